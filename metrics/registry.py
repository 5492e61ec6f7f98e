"""Variable registry: the exporter's Prometheus registry plus discovery state"""
from typing import Dict, List, Optional
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from .models import ParsedValue, RemoteVariable, VariableKind
from upstream.parser import sanitise_metric_name
from logging_config import get_logger


logger = get_logger(__name__)


class VariableRegistry:
    """Owns every gauge, the known GET variables and the POST variable list.

    Registration and updates are separate steps: ``register_variable`` adds
    (or replaces) a gauge, ``apply_reading`` only ever mutates existing ones.
    """

    def __init__(self, prefix: str = "nucleares", default_collectors: bool = True):
        self.prefix = prefix
        self.registry = CollectorRegistry()
        if default_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.requests_total = Counter(
            f"{prefix}_http_requests",
            "Total number of HTTP requests",
            ["method", "route", "status"],
            registry=self.registry,
        )

        self.variables: Dict[str, RemoteVariable] = {}
        self.post_variables: List[str] = []
        self.initialised = False
        self._gauges: Dict[str, Gauge] = {}
        self._variable_gauges: Dict[str, Gauge] = {}

    def metric_name_for(self, name: str) -> str:
        return f"{self.prefix}_{sanitise_metric_name(name)}"

    def register_variable(self, name: str, parsed: ParsedValue) -> RemoteVariable:
        """Register a gauge for a GET variable, replacing any gauge with the same metric name"""
        metric_name = self.metric_name_for(name)

        previous = self._gauges.pop(metric_name, None)
        if previous is not None:
            self.registry.unregister(previous)
            logger.debug("Replacing gauge", metric=metric_name, variable=name, event_type="gauge_replaced")

        gauge = Gauge(
            metric_name,
            f"Nucleares variable {name}",
            ["variable"],
            registry=self.registry,
        )
        self._gauges[metric_name] = gauge
        self._variable_gauges[name] = gauge

        variable = RemoteVariable(name=name, metric_name=metric_name, kind=parsed.kind)
        self.variables[name] = variable
        if parsed.is_numeric:
            self._set(variable, parsed.as_gauge_value())
        return variable

    def apply_reading(self, name: str, parsed: ParsedValue) -> bool:
        """Apply a fresh reading to a known variable; returns True when the gauge changed.

        A boolean variable that reads as a number is upgraded to a number for
        good. Readings that do not match the recorded kind are ignored.
        """
        variable = self.variables.get(name)
        if variable is None:
            return False

        if variable.kind == VariableKind.BOOLEAN:
            if parsed.kind == VariableKind.BOOLEAN:
                self._set(variable, parsed.as_gauge_value())
                return True
            if parsed.kind == VariableKind.NUMBER:
                # Some variables start as 0/1 and later report real values (e.g. ordered speeds)
                variable.kind = VariableKind.NUMBER
                logger.info("Variable upgraded to number", variable=name, event_type="variable_upgraded")
                self._set(variable, parsed.as_gauge_value())
                return True
        elif variable.kind == VariableKind.NUMBER and parsed.kind == VariableKind.NUMBER:
            self._set(variable, parsed.as_gauge_value())
            return True

        return False

    def _set(self, variable: RemoteVariable, value: float) -> None:
        variable.value = value
        # gauge replaced by a colliding name stays bound to its old variable, unexported
        gauge = self._variable_gauges.get(variable.name)
        if gauge is not None:
            gauge.labels(variable=variable.name).set(value)

    def set_post_variables(self, names: List[str]) -> None:
        self.post_variables = list(names)

    def mark_initialised(self) -> None:
        self.initialised = True

    def get_variable(self, name: str) -> Optional[RemoteVariable]:
        return self.variables.get(name)

    def list_variables(self) -> List[str]:
        """List all known GET variable names"""
        return list(self.variables.keys())

    def get_gauge(self, metric_name: str) -> Optional[Gauge]:
        return self._gauges.get(metric_name)

    def get_sample_value(self, name: str) -> Optional[float]:
        """Current exported value of a variable's gauge"""
        variable = self.variables.get(name)
        if variable is None:
            return None
        return self.registry.get_sample_value(variable.metric_name, {"variable": name})

    def get_status(self) -> Dict[str, Dict]:
        """Status information for all known variables"""
        return {name: variable.to_dict() for name, variable in self.variables.items()}

    def exposition(self) -> bytes:
        """Render the registry in the Prometheus text format"""
        return generate_latest(self.registry)
