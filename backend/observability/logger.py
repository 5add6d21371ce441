"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_enabled: bool = True


def configure_logging(*, enabled: bool) -> None:
    """Turn JSONL output on or off process-wide (AppConfig.enable_json_logs)."""
    global _enabled  # pylint: disable=global-statement
    _enabled = enabled


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller is responsible for supplying a fully-formed event dict.

    This function:
    - Serializes to JSON
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if not _enabled:
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash a connection
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def log_ws_event(event_type: str, *, connection_id: str | None, **details: Any) -> None:
    """
    Convenience wrapper for connection-scoped events.

    Stamps wall-clock ts_ms and the connection id; extra keyword
    arguments become top-level fields.
    """
    payload: dict[str, Any] = {
        "ts_ms": int(time.time() * 1000),
        "event_type": event_type,
        "connection_id": connection_id,
    }
    payload.update(details)
    log_event(payload)
