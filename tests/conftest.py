"""Shared fixtures: a fake Nucleares webserver behind httpx.MockTransport"""
import httpx
import pytest

from config import Config
from metrics.registry import VariableRegistry
from upstream.client import UpstreamClient


ROOT_DOCUMENT = """<html><body><pre>
==== GET ====
<a href="/?variable=PUMP_1_ON">PUMP_1_ON</a><br>
<a href="/?variable=TEMP_1">TEMP_1</a><br>
==== POST ====
<b>SET_PUMP_1</b><br>
<b>SET_TEMP_1</b><br>
</pre></body></html>
"""


class FakeNucleares:
    """Minimal stand-in for the game's webserver"""

    def __init__(self, root: str = ROOT_DOCUMENT, values=None):
        self.root = root
        self.values = dict(values or {})
        self.offline = False
        self.root_status = 200
        self.post_status = 200
        self.failing = set()
        self.requests = []
        self.posts = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("Connection refused", request=request)

        name = request.url.params.get("variable")
        if request.method == "POST":
            self.posts.append((name, request.url.params.get("value")))
            return httpx.Response(self.post_status)

        if name is None:
            return httpx.Response(self.root_status, text=self.root)
        if name in self.failing:
            raise httpx.ReadTimeout("Read timed out", request=request)
        if name not in self.values:
            return httpx.Response(404, text="Unknown variable")
        return httpx.Response(200, text=self.values[name])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def variable_requests(self):
        return [r for r in self.requests if "variable" in r.url.params]


@pytest.fixture
def config():
    return Config(nucleares_url="http://nucleares.test:8785/")


@pytest.fixture
def fake():
    return FakeNucleares(values={"PUMP_1_ON": "false", "TEMP_1": "312,5"})


@pytest.fixture
def upstream(config, fake):
    return UpstreamClient(config, transport=fake.transport)


@pytest.fixture
def registry():
    return VariableRegistry(prefix="nucleares", default_collectors=False)
