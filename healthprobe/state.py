from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def serialize_ts(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def now_rfc3339() -> str:
    return serialize_ts(datetime.now(timezone.utc))


@dataclass(frozen=True)
class HealthCheckResult:
    success: bool = False
    command: str = ""
    timestamp: str = ""


class ResultStore:
    """Single-slot holder for the latest health check result.

    Writers swap in a whole new immutable result; rebinding an attribute is atomic,
    so readers never take a lock and never see a half-written value.
    """

    def __init__(self, initial: HealthCheckResult | None = None) -> None:
        self._current = initial if initial is not None else HealthCheckResult()

    def store(self, result: HealthCheckResult) -> None:
        self._current = result

    def load(self) -> HealthCheckResult:
        return self._current
