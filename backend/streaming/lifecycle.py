"""
Lifecycle controller: shutdown gate, close() and the one-shot finalize.

Shutdown has two entry points and one exit:

    caller close()          dispatcher exits (normal close / read failure)
          |                               |
    seal writer (final unit)              |
    open shutdown gate                    |
    close transport                       |
    await dispatcher task                 |
          +--------------> finalize() <---+
                         (exactly once)

finalize() closes every output channel and the error channel exactly
once, marks the state CLOSED and logs WS_CLOSED with the stats snapshot.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from observability.logger import log_ws_event
from observability.metrics import ConnectionStats
from protocol.frames import OutboundUnit
from streaming.channels import Channel, ErrorChannel
from streaming.state import ConnectionState
from streaming.writer import FrameWriter
from transport.base import Transport


class LifecycleController:
    """
    Owns connection state and teardown ordering.

    close() is idempotent and safe to call concurrently: the first call
    starts the teardown, every call (including later ones) waits for it.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        writer: FrameWriter,
        channels: Sequence[Channel[Any]],
        errors: ErrorChannel,
        stats: ConnectionStats,
        final_unit: OutboundUnit | None,
        connection_id: str,
    ) -> None:
        self._transport = transport
        self._writer = writer
        self._channels = tuple(channels)
        self._errors = errors
        self._stats = stats
        self._final_unit = final_unit
        self._connection_id = connection_id

        self.shutdown = asyncio.Event()

        self._state = ConnectionState.RUNNING
        self._finalized = False
        self._dispatch_task: asyncio.Task[None] | None = None
        self._closing: asyncio.Future[None] | None = None

    # -------------------------
    # State
    # -------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _set_state(self, new: ConnectionState) -> None:
        if new is self._state:
            return
        old = self._state
        self._state = new
        log_ws_event(
            "WS_STATE",
            connection_id=self._connection_id,
            from_state=old.value,
            to_state=new.value,
        )

    def attach_dispatcher(self, task: asyncio.Task[None]) -> None:
        """Register the dispatcher task so close() can wait for it."""
        self._dispatch_task = task

    def begin_drain(self) -> None:
        """Dispatcher left its read loop; no more frames will be routed."""
        if self._state is ConnectionState.RUNNING:
            self._set_state(ConnectionState.DRAINING)

    def open_gate(self) -> None:
        """
        Open the shutdown gate.

        Producers blocked on a full channel give up; buffered items stay
        readable until finalize closes the channels.
        """
        self.shutdown.set()
        for channel in self._channels:
            channel.abort_puts()

    # -------------------------
    # Finalize
    # -------------------------

    def finalize(self) -> None:
        """
        Close every channel exactly once and mark the connection CLOSED.

        Shared by caller-initiated and error-initiated shutdown; second and
        later calls are no-ops.
        """
        if self._finalized:
            return
        self._finalized = True

        self._writer.mark_closed()
        self.shutdown.set()
        self.begin_drain()

        for channel in self._channels:
            channel.close()
        self._errors.close()

        self._stats.errors_dropped = self._errors.dropped
        self._set_state(ConnectionState.CLOSED)

        log_ws_event(
            "WS_CLOSED",
            connection_id=self._connection_id,
            stats=self._stats.snapshot(),
            channels=[c.snapshot() for c in self._channels],
        )

    # -------------------------
    # Caller-initiated close
    # -------------------------

    async def close(self) -> None:
        """
        Close the connection and wait until teardown has completed.
        """
        if self._closing is None:
            log_ws_event(
                "WS_CLOSE_REQUESTED",
                connection_id=self._connection_id,
                state=self._state.value,
            )
            self._closing = asyncio.ensure_future(self._close_once())
        await asyncio.shield(self._closing)

    async def _close_once(self) -> None:
        try:
            await self._writer.seal(self._final_unit)
            self.open_gate()
            await self._transport.close()

            if self._dispatch_task is not None:
                # wait() never raises; the dispatcher reports its own failures.
                await asyncio.wait({self._dispatch_task})
        finally:
            self.finalize()
