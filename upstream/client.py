"""Async HTTP client for the Nucleares webserver"""
import asyncio
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import quote, unquote
import httpx
from config import Config
from logging_config import get_logger
from .errors import ControlError, UpstreamError


logger = get_logger(__name__)

# Characters left alone by JavaScript's encodeURIComponent besides [A-Za-z0-9_.~-]
_COMPONENT_SAFE = "!*'()"
_MALFORMED_ESCAPE_RE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def encode_component(value: str) -> str:
    """Percent-encode a query component"""
    return quote(value, safe=_COMPONENT_SAFE)


def decode_component(token: str) -> str:
    """Percent-decode a token, returning it unchanged when it is malformed"""
    if _MALFORMED_ESCAPE_RE.search(token):
        return token
    try:
        return unquote(token, errors='strict')
    except UnicodeDecodeError:
        return token


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class UpstreamClient:
    """Plain-text variable endpoint client.

    Each call opens a short-lived ``httpx.AsyncClient``; the whole exchange,
    body included, must finish within the call's timeout.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = config.nucleares_url.rstrip('/')
        self.probe_timeout = config.probe_timeout
        self.request_timeout = config.request_timeout
        self._transport = transport

    @asynccontextmanager
    async def _client(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            yield client

    @property
    def root_url(self) -> str:
        return f"{self.base_url}/"

    def variable_url(self, name: str) -> str:
        return f"{self.base_url}/?variable={encode_component(name)}"

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> str:
        """GET a URL and return its body, raising UpstreamError on any failure"""
        timeout = timeout or self.request_timeout
        try:
            async with self._client(timeout) as client:
                response = await asyncio.wait_for(client.get(url), timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise UpstreamError(url, f"fetch failed for {url}: timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise UpstreamError(url, f"fetch failed for {url}: {_describe(e)}") from e

        if not response.is_success:
            raise UpstreamError(
                url,
                f"fetch failed for {url}: Request failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase
            )
        return response.text

    async def fetch_root(self) -> str:
        return await self.fetch_text(self.root_url)

    async def fetch_variable(self, name: str) -> str:
        return await self.fetch_text(self.variable_url(name))

    async def is_alive(self) -> bool:
        """Probe the root page; any HTTP response counts as reachable"""
        try:
            async with self._client(self.probe_timeout) as client:
                await asyncio.wait_for(client.get(self.root_url), self.probe_timeout)
        except asyncio.TimeoutError:
            logger.debug("Liveness probe timed out", url=self.root_url, event_type="liveness_probe")
            return False
        except httpx.HTTPError as e:
            logger.debug("Liveness probe failed", url=self.root_url, error=_describe(e), event_type="liveness_probe")
            return False
        return True

    async def post_variable(self, name: str, value: str) -> None:
        """Write one variable, raising ControlError when it is not accepted"""
        url = f"{self.variable_url(name)}&value={encode_component(value)}"
        try:
            async with self._client(self.request_timeout) as client:
                response = await asyncio.wait_for(client.post(url), self.request_timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise ControlError(url, f"Failed to set {name}: timed out after {self.request_timeout}s") from e
        except httpx.HTTPError as e:
            raise ControlError(url, f"Failed to set {name}: {_describe(e)}") from e

        if not response.is_success:
            raise ControlError(
                url,
                f"Failed to set {name}: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase
            )
