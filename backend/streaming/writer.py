"""
Serialized frame writer.

Every outbound unit goes through FrameWriter.send():
- empty text / empty audio is a no-op (nothing is sent)
- the write lock is held for the closed check, the encode and exactly
  one transport.send(), so a close() can never interleave with a write
- writes after close, and chunk writes after end of input, raise
  ClosedConnectionError without touching the socket

The lock is also what makes per-caller ordering hold: units from a
single caller hit the wire in call order, and concurrent callers see
some total order.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from observability.logger import log_ws_event
from observability.metrics import ConnectionStats
from protocol.frames import (
    INPUT_ENDING_CONTROLS,
    AudioChunk,
    ControlSignal,
    OutboundUnit,
    TextChunk,
)
from streaming.errors import ClosedConnectionError
from transport.base import Transport, TransportClosed


Encoder = Callable[[OutboundUnit], str]


def _is_empty(unit: OutboundUnit) -> bool:
    if isinstance(unit, TextChunk):
        return not unit.text
    if isinstance(unit, AudioChunk):
        return not unit.audio
    return False


class FrameWriter:
    """
    Owns the write lock, the closed flag and the input-ended flag.

    Args:
        transport: open socket
        encode: protocol-specific unit encoder (codec.encode_tts_unit / encode_stt_unit)
        stats: per-connection counters (units_sent is incremented here)
    """

    def __init__(
        self,
        transport: Transport,
        encode: Encoder,
        *,
        stats: ConnectionStats,
        connection_id: str,
    ) -> None:
        self._transport = transport
        self._encode = encode
        self._stats = stats
        self._connection_id = connection_id

        self._lock = asyncio.Lock()
        self._closed = False
        self._input_ended = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def input_ended(self) -> bool:
        return self._input_ended

    async def send(self, unit: OutboundUnit) -> None:
        """
        Write one unit.

        Raises:
            ClosedConnectionError if the connection is closed (or the peer
                closed it underneath us), or a chunk arrives after end of input
            ValueError if the unit is not valid for this socket
        """
        if _is_empty(unit):
            return

        async with self._lock:
            if self._closed:
                raise ClosedConnectionError()
            if self._input_ended and isinstance(unit, (TextChunk, AudioChunk)):
                raise ClosedConnectionError("input already ended")

            payload = self._encode(unit)
            try:
                await self._transport.send(payload)
            except TransportClosed as e:
                raise ClosedConnectionError(f"connection closed: {e}") from e

            self._stats.units_sent += 1
            if isinstance(unit, ControlSignal) and unit.kind in INPUT_ENDING_CONTROLS:
                self._input_ended = True

    async def seal(self, final_unit: OutboundUnit | None) -> bool:
        """
        Mark the writer closed and best-effort send the final unit.

        Runs under the write lock so no caller write can land after the
        final unit. A failed final send is logged and otherwise ignored.

        Returns:
            True if this call sealed the writer, False if it was already closed.
        """
        async with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._input_ended = True

            if final_unit is None:
                return True

            try:
                await self._transport.send(self._encode(final_unit))
                self._stats.units_sent += 1
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_ws_event(
                    "WS_FINAL_SEND_FAILED",
                    connection_id=self._connection_id,
                    error=f"{type(e).__name__}: {e}",
                )
            return True

    def mark_closed(self) -> None:
        """
        Reject further writes without sending anything.

        Used when the read side terminated on its own; the socket is gone,
        so there is nothing left to send.
        """
        self._closed = True
        self._input_ended = True
