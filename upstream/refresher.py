"""On-demand refresh of every known variable's gauge"""
import asyncio
import time
from typing import Optional
from metrics.models import RefreshResult
from metrics.registry import VariableRegistry
from logging_config import get_logger, log_refresh
from .client import UpstreamClient
from .errors import UpstreamError
from .parser import parse_value


logger = get_logger(__name__)


class MetricsRefresher:
    """Re-polls known variables and applies the readings to their gauges"""

    def __init__(self, client: UpstreamClient, registry: VariableRegistry, probe: bool = True):
        self.client = client
        self.registry = registry
        self.probe = probe
        self.last_result: Optional[RefreshResult] = None
        self.last_refresh_time = 0.0

    async def refresh(self) -> RefreshResult:
        """Refresh all variables concurrently; never raises for per-variable failures"""
        result = RefreshResult()
        if not self.registry.initialised or not self.registry.variables:
            result.skipped = True
            return result

        if self.probe and not await self.client.is_alive():
            # Keep last-known values while the game is offline
            logger.debug("Nucleares webserver offline, skipping refresh", event_type="refresh_skipped")
            result.skipped = True
            self.last_result = result
            return result

        start_time = time.time()
        names = self.registry.list_variables()
        outcomes = await asyncio.gather(
            *(self._refresh_one(name) for name in names),
            return_exceptions=True
        )

        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Unexpected refresh failure", variable=name, error=str(outcome),
                             event_type="refresh_error")
                result.failed.append(name)
            elif outcome is None:
                result.failed.append(name)
            elif outcome:
                result.updated.append(name)
            else:
                result.unchanged.append(name)

        self.last_result = result
        self.last_refresh_time = time.time()
        log_refresh(logger, len(result.updated), len(result.failed), self.last_refresh_time - start_time)
        return result

    async def _refresh_one(self, name: str) -> Optional[bool]:
        """Returns whether the gauge changed, or None when the fetch failed"""
        try:
            value_text = await self.client.fetch_variable(name)
        except UpstreamError as e:
            # Previous value stays in place
            logger.warning(f'Failed to refresh Nucleares variable "{name}"',
                           variable=name, error=str(e), event_type="refresh_error")
            return None
        return self.registry.apply_reading(name, parse_value(value_text))
