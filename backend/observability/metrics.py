"""
Metrics and timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as JSONL events via observability.logger
- Never aggregate timers: one measurement = one log event
- Keep per-connection counters that are logged once at close

Design notes:
- Durations use monotonic time for correctness
- Event timestamps (ts_ms) use wall-clock time for human readability
- Prefer the `timed()` context manager to avoid leaked timers
"""

from __future__ import annotations

import time
import uuid
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from observability.logger import log_event


# -----------------------------------------------------------------------------
# Internal timer storage
# -----------------------------------------------------------------------------
# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


# -----------------------------------------------------------------------------
# Timers
# -----------------------------------------------------------------------------

def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns:
        timer_id (str): Opaque ID required to stop the timer later.

    Callers MUST call stop_timer() in a finally block
    unless using the `timed()` context manager.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    connection_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a METRIC_TIMER event.

    Returns:
        duration_ms if the timer existed, else None
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "connection_id": connection_id,
        "details": details or {},
    })

    return duration_ms


@contextmanager
def timed(
    name: str,
    *,
    connection_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for measuring durations safely.

    Guarantees:
    - Timer is ALWAYS stopped (no leaks)
    - Metric is emitted exactly once
    - Exceptions inside the block propagate unchanged

    Usage:
        with timed("ws_handshake", connection_id=conn_id):
            ws = await ws_connect(url)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(timer_id, connection_id=connection_id, details=details)


# -----------------------------------------------------------------------------
# Per-connection counters
# -----------------------------------------------------------------------------

@dataclass
class ConnectionStats:
    """
    Mutable counters for one connection.

    Written by the writer (units_sent) and the dispatcher (everything
    else); read for the WS_CLOSED log line and by tests.
    """
    units_sent: int = 0
    messages_received: int = 0
    frames_routed: Counter[str] = field(default_factory=Counter)
    frames_dropped: Counter[str] = field(default_factory=Counter)
    errors_reported: int = 0
    errors_dropped: int = 0
    opened_at_ns: int = field(default_factory=time.monotonic_ns)

    def record_routed(self, kind: str) -> None:
        """Count one frame delivered to the channel for `kind`."""
        self.frames_routed[kind] += 1

    def record_dropped(self, kind: str) -> None:
        self.frames_dropped[kind] += 1

    def uptime_ms(self) -> int:
        """Milliseconds since the connection object was created."""
        return (time.monotonic_ns() - self.opened_at_ns) // 1_000_000

    def snapshot(self) -> dict[str, Any]:
        """
        Lightweight snapshot for logging / metrics.
        """
        return {
            "units_sent": self.units_sent,
            "messages_received": self.messages_received,
            "frames_routed": dict(self.frames_routed),
            "frames_dropped": dict(self.frames_dropped),
            "errors_reported": self.errors_reported,
            "errors_dropped": self.errors_dropped,
            "uptime_ms": self.uptime_ms(),
        }
