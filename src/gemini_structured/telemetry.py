"""Scoped timings and counters for orchestration and recovery.

Telemetry is off unless ``GEMINI_STRUCTURED_TELEMETRY=1`` (or ``DEBUG=1``) is
set and at least one reporter is supplied; otherwise every call lands on a
shared no-op object.

Scopes nest per task: a counter recorded inside ``orchestrator.generate`` is
reported as ``orchestrator.generate.<name>``.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
import os
import time
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)

_active_scopes: ContextVar[tuple[str, ...]] = ContextVar(
    "gemini_structured_scopes", default=()
)


def telemetry_enabled() -> bool:
    flag = os.getenv("GEMINI_STRUCTURED_TELEMETRY") or os.getenv("DEBUG")
    return flag == "1"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Anything that accepts scope timings and metric values."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...


class _DisabledTelemetry:
    """Stand-in used when telemetry is off. Every operation does nothing."""

    __slots__ = ()

    def __call__(self, name: str, **metadata: Any) -> "_DisabledTelemetry":
        return self

    def __enter__(self) -> "_DisabledTelemetry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        return None

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        return None


def _placement(name: str) -> tuple[str, dict[str, Any]]:
    scopes = _active_scopes.get()
    parent = ".".join(scopes)
    path = f"{parent}.{name}" if parent else name
    return path, {"depth": len(scopes), "parent_scope": parent or None}


class _ScopedTelemetry:
    """Times nested scopes and forwards counters to every reporter."""

    __slots__ = ("reporters",)

    def __init__(self, reporters: tuple[TelemetryReporter, ...]):
        self.reporters = reporters

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator["_ScopedTelemetry"]:
        if not isinstance(name, str) or not name:
            raise ValueError(f"Telemetry scope needs a non-empty name, got {name!r}")
        path, placement = _placement(name)
        token = _active_scopes.set((*_active_scopes.get(), name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _active_scopes.reset(token)
            self._publish("record_timing", path, elapsed, **placement, **metadata)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        path, placement = _placement(name)
        self._publish(
            "record_metric", path, increment, metric_type="counter", **placement, **metadata
        )

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        path, placement = _placement(name)
        self._publish(
            "record_metric", path, value, metric_type="gauge", **placement, **metadata
        )

    def _publish(self, hook: str, scope: str, value: Any, **metadata: Any) -> None:
        # A broken reporter must never break generation.
        for reporter in self.reporters:
            try:
                getattr(reporter, hook)(scope, value, **metadata)
            except Exception:
                log.exception("Telemetry reporter %s failed on %s", type(reporter).__name__, scope)


_DISABLED = _DisabledTelemetry()

type TelemetryContextProtocol = _ScopedTelemetry | _DisabledTelemetry


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a live telemetry context, or the shared no-op when disabled."""
    if reporters and telemetry_enabled():
        return _ScopedTelemetry(reporters)
    return _DISABLED


class SimpleReporter:
    """Keeps the most recent timings and metrics per scope in memory."""

    def __init__(self, keep: int = 1000):
        self.keep = keep
        self.timings: dict[str, deque[float]] = {}
        self.metrics: dict[str, deque[Any]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings.setdefault(scope, deque(maxlen=self.keep)).append(duration)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics.setdefault(scope, deque(maxlen=self.keep)).append(value)

    def total(self, scope: str) -> float:
        """Sum of the numeric values recorded under ``scope``."""
        return sum(v for v in self.metrics.get(scope, ()) if isinstance(v, int | float))
