"""Variable data models"""
from dataclasses import dataclass, field
from typing import List, Optional, Union
from enum import Enum


class VariableKind(Enum):
    """Inferred type of an upstream variable"""
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"


@dataclass(frozen=True)
class ParsedValue:
    """Classification of one raw value read from the upstream"""
    kind: VariableKind
    value: Union[bool, float, str]

    @property
    def is_numeric(self) -> bool:
        return self.kind in (VariableKind.BOOLEAN, VariableKind.NUMBER)

    def as_gauge_value(self) -> float:
        """Numeric representation for a gauge (booleans become 1/0)"""
        if self.kind == VariableKind.BOOLEAN:
            return 1.0 if self.value else 0.0
        if self.kind == VariableKind.NUMBER:
            return float(self.value)
        raise ValueError(f"String value {self.value!r} has no gauge representation")


@dataclass
class RemoteVariable:
    """A GET variable discovered on the upstream root page"""
    name: str
    metric_name: str
    kind: VariableKind
    value: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "metric": self.metric_name,
            "kind": self.kind.value,
            "value": self.value,
        }


@dataclass
class DiscoveryResult:
    """Summary of one discovery run"""
    reachable: bool = True
    get_section_found: bool = False
    get_variables: List[str] = field(default_factory=list)
    post_variables: Optional[List[str]] = None
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "reachable": self.reachable,
            "get_section_found": self.get_section_found,
            "get_variables": self.get_variables,
            "post_variables": self.post_variables,
            "failed": self.failed,
        }


@dataclass
class RefreshResult:
    """Summary of one refresh cycle"""
    skipped: bool = False
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "skipped": self.skipped,
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "failed": self.failed,
        }
