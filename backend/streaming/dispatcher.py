"""
Reader / dispatcher: the single task that owns the read side of a socket.

Per inbound message:
- decode failure           -> FrameDecodeError on the error channel, keep reading
- server error frame       -> ServerError on the error channel, keep reading
- audio frame              -> audio channel (raw bytes)
- alignment frame          -> alignment channel (dropped and counted when full)
- transcript frame         -> transcript channel

Exit conditions:
- normal closure (1000/1001), or any closure after the shutdown gate
  opened                   -> exit quietly
- any other read failure   -> TransportReadError reported exactly once
- a routing put refused    -> shutdown gate opened or channel closed; exit

On exit the connection moves to DRAINING and the shared finalize runs.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Collection, Mapping

from observability.logger import log_ws_event
from observability.metrics import ConnectionStats
from protocol.frames import FrameKind, InboundFrame
from streaming.channels import Channel, ErrorChannel
from streaming.errors import FrameDecodeError, ServerError, TransportReadError
from streaming.lifecycle import LifecycleController
from transport.base import Transport, TransportClosed


Decoder = Callable[[str | bytes], list[InboundFrame]]


class Dispatcher:
    """
    Reads frames, decodes them and routes each one by kind.

    routes maps every non-error FrameKind the decoder can produce to
    its output channel. Audio frames are delivered as raw bytes; every
    other kind is delivered as the frame object.

    Kinds listed in lossy are delivered without waiting: when their
    channel is full the frame is dropped, counted and logged, so an
    unread side channel never stalls the primary output.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        decode: Decoder,
        routes: Mapping[FrameKind, Channel[Any]],
        errors: ErrorChannel,
        lifecycle: LifecycleController,
        stats: ConnectionStats,
        connection_id: str,
        lossy: Collection[FrameKind] = (),
    ) -> None:
        self._transport = transport
        self._decode = decode
        self._routes = dict(routes)
        self._lossy = frozenset(lossy)
        self._errors = errors
        self._lifecycle = lifecycle
        self._stats = stats
        self._connection_id = connection_id

    async def run(self) -> None:
        """Dispatcher task body. Never raises (except cancellation)."""
        try:
            await self._read_loop()
        finally:
            self._lifecycle.begin_drain()
            self._lifecycle.finalize()

    # -------------------------
    # Read loop
    # -------------------------

    async def _read_loop(self) -> None:
        while True:
            try:
                raw = await self._transport.recv()
            except TransportClosed as e:
                self._on_closed(e)
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:  # pylint: disable=broad-exception-caught
                self._on_read_failure(f"{type(e).__name__}: {e}", close_code=None)
                return

            self._stats.messages_received += 1

            try:
                frames = self._decode(raw)
            except FrameDecodeError as e:
                log_ws_event(
                    "WS_DECODE_FAILED",
                    connection_id=self._connection_id,
                    error=e.reason,
                )
                self._report(e)
                continue

            for frame in frames:
                if not await self._route(frame):
                    return

    def _on_closed(self, exc: TransportClosed) -> None:
        if exc.normal or self._lifecycle.shutdown.is_set():
            log_ws_event(
                "WS_READ_CLOSED",
                connection_id=self._connection_id,
                code=exc.code,
                reason=exc.reason,
            )
            return
        self._on_read_failure(str(exc), close_code=exc.code)

    def _on_read_failure(self, reason: str, *, close_code: int | None) -> None:
        if self._lifecycle.shutdown.is_set():
            # We closed the socket ourselves; whatever recv() raised is expected.
            log_ws_event(
                "WS_READ_CLOSED",
                connection_id=self._connection_id,
                code=close_code,
                reason=reason,
            )
            return

        log_ws_event(
            "WS_READ_FAILED",
            connection_id=self._connection_id,
            error=reason,
            code=close_code,
        )
        self._report(TransportReadError(reason, close_code=close_code))

    # -------------------------
    # Routing
    # -------------------------

    async def _route(self, frame: InboundFrame) -> bool:
        """
        Deliver one frame. Returns False when the dispatcher must stop.
        """
        if frame.kind is FrameKind.ERROR:
            log_ws_event(
                "WS_SERVER_ERROR",
                connection_id=self._connection_id,
                message=frame.message,
                code=frame.code,
            )
            self._report(ServerError(frame.message, code=frame.code))
            return True

        channel = self._routes.get(frame.kind)
        if channel is None:
            self._report(FrameDecodeError(f"unexpected {frame.kind.value} frame"))
            return True

        item = frame.audio if frame.kind is FrameKind.AUDIO else frame

        if frame.kind in self._lossy:
            if channel.try_put(item):
                self._stats.record_routed(frame.kind.value)
            elif not channel.closed:
                self._stats.record_dropped(frame.kind.value)
                log_ws_event(
                    "WS_FRAME_DROPPED",
                    connection_id=self._connection_id,
                    kind=frame.kind.value,
                    dropped=self._stats.frames_dropped[frame.kind.value],
                )
            return True

        # Blocks while the channel is full: the only backpressure path.
        if not await channel.put(item):
            return False

        self._stats.record_routed(frame.kind.value)
        return True

    def _report(self, error: Exception) -> None:
        if self._errors.report(error):
            self._stats.errors_reported += 1
            return

        self._stats.errors_dropped = self._errors.dropped
        log_ws_event(
            "WS_ERROR_DROPPED",
            connection_id=self._connection_id,
            error=str(error),
            dropped=self._errors.dropped,
        )
