"""Tests for the metrics refresher"""
import pytest

from conftest import FakeNucleares
from metrics.models import VariableKind
from upstream.client import UpstreamClient
from upstream.discovery import VariableDiscovery
from upstream.refresher import MetricsRefresher


THREE_VARIABLES = """==== GET ====
<a href="/?variable=PUMP_1_ON">x</a>
<a href="/?variable=TEMP_1">x</a>
<a href="/?variable=PRESSURE">x</a>
==== POST ====
"""


class TestMetricsRefresher:
    """Test refresh cycles against a fake webserver"""

    def setup_method(self):
        """Setup test fixtures"""
        self.fake = FakeNucleares(
            root=THREE_VARIABLES,
            values={"PUMP_1_ON": "false", "TEMP_1": "300", "PRESSURE": "1,5"}
        )

    def _build(self, config, registry, probe=True):
        client = UpstreamClient(config, transport=self.fake.transport)
        return VariableDiscovery(client, registry, probe=probe), MetricsRefresher(client, registry, probe=probe)

    @pytest.mark.asyncio
    async def test_noop_before_discovery(self, config, registry):
        _, refresher = self._build(config, registry)

        result = await refresher.refresh()

        assert result.skipped is True
        assert self.fake.requests == []

    @pytest.mark.asyncio
    async def test_updates_all_variables(self, config, registry):
        discovery, refresher = self._build(config, registry)
        await discovery.discover()
        self.fake.values.update({"PUMP_1_ON": "true", "TEMP_1": "305,25", "PRESSURE": "2"})

        result = await refresher.refresh()

        assert sorted(result.updated) == ["PRESSURE", "PUMP_1_ON", "TEMP_1"]
        assert registry.get_sample_value("PUMP_1_ON") == 1.0
        assert registry.get_sample_value("TEMP_1") == 305.25
        assert registry.get_sample_value("PRESSURE") == 2.0

    @pytest.mark.asyncio
    async def test_auto_upgrade_sequence(self, config, registry):
        discovery, refresher = self._build(config, registry)
        await discovery.discover()
        assert registry.get_variable("PUMP_1_ON").kind == VariableKind.BOOLEAN
        assert registry.get_sample_value("PUMP_1_ON") == 0.0

        self.fake.values["PUMP_1_ON"] = "42.5"
        await refresher.refresh()
        assert registry.get_variable("PUMP_1_ON").kind == VariableKind.NUMBER
        assert registry.get_sample_value("PUMP_1_ON") == 42.5

        self.fake.values["PUMP_1_ON"] = "true"
        result = await refresher.refresh()
        assert registry.get_variable("PUMP_1_ON").kind == VariableKind.NUMBER
        assert registry.get_sample_value("PUMP_1_ON") == 42.5
        assert "PUMP_1_ON" in result.unchanged

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, config, registry):
        discovery, refresher = self._build(config, registry)
        await discovery.discover()
        self.fake.values.update({"PUMP_1_ON": "true", "PRESSURE": "9"})
        self.fake.failing.add("TEMP_1")

        result = await refresher.refresh()

        assert result.failed == ["TEMP_1"]
        assert registry.get_sample_value("PUMP_1_ON") == 1.0
        assert registry.get_sample_value("PRESSURE") == 9.0
        assert registry.get_sample_value("TEMP_1") == 300.0

    @pytest.mark.asyncio
    async def test_offline_upstream_keeps_values(self, config, registry):
        discovery, refresher = self._build(config, registry)
        await discovery.discover()
        before = registry.exposition()
        self.fake.values.update({"PUMP_1_ON": "true", "TEMP_1": "999"})
        self.fake.offline = True

        result = await refresher.refresh()

        assert result.skipped is True
        assert registry.exposition() == before
        assert refresher.last_result is result

    @pytest.mark.asyncio
    async def test_probe_disabled_skips_liveness_request(self, config, registry):
        discovery, refresher = self._build(config, registry, probe=False)
        await discovery.discover()
        self.fake.requests.clear()

        await refresher.refresh()

        assert len(self.fake.requests) == 3
        assert len(self.fake.variable_requests()) == 3

    @pytest.mark.asyncio
    async def test_unparseable_reading_is_skipped(self, config, registry):
        discovery, refresher = self._build(config, registry)
        await discovery.discover()
        self.fake.values["TEMP_1"] = "ERROR"

        result = await refresher.refresh()

        assert "TEMP_1" in result.unchanged
        assert registry.get_sample_value("TEMP_1") == 300.0
