"""In-memory reactor state behind the placeholder control UI endpoints"""
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ReactorState:
    power_level: float = 0.75
    temperature: float = 320
    status: str = "nominal"
    last_updated: str = field(default_factory=_now)

    def touch(self) -> None:
        self.last_updated = _now()

    def set_power_level(self, power_level: float) -> None:
        """Clamp to [0, 1] and mark the reactor as adjusting"""
        self.power_level = max(0.0, min(1.0, float(power_level)))
        self.status = "adjusting"
        self.touch()

    def to_dict(self) -> dict:
        return {
            "powerLevel": self.power_level,
            "temperature": self.temperature,
            "status": self.status,
            "lastUpdated": self.last_updated,
        }
