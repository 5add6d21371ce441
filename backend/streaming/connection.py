"""
Duplex connection: one socket, one writer, one dispatcher, one lifecycle.

Concrete synthesis / transcription connections subclass DuplexConnection
and add their protocol-specific writer calls and output channels. This
class owns the wiring:

    caller ──> FrameWriter ──> transport.send()
    transport.recv() ──> Dispatcher ──> output channels / error channel
    close() ──> LifecycleController ──> finalize (exactly once)
"""

from __future__ import annotations

import asyncio
from typing import Any, Collection, Mapping
from uuid import uuid4

from config import AppConfig
from observability.logger import log_ws_event
from observability.metrics import ConnectionStats
from protocol.frames import FrameKind, OutboundUnit
from streaming.channels import Channel, ErrorChannel
from streaming.dispatcher import Decoder, Dispatcher
from streaming.errors import ConnectError
from streaming.lifecycle import LifecycleController
from streaming.state import ConnectionState
from streaming.writer import Encoder, FrameWriter
from transport.base import Transport


def new_connection_id() -> str:
    """Short random id stamped on every log line of one connection."""
    return f"conn_{uuid4().hex[:12]}"


class DuplexConnection:
    """
    Base for one open streaming connection.

    Subclasses pass their codec functions, their routing table and the
    final control unit sent on close(). Kinds in lossy are routed
    without backpressure (see Dispatcher).
    """

    def __init__(
        self,
        transport: Transport,
        *,
        encode: Encoder,
        decode: Decoder,
        routes: Mapping[FrameKind, Channel[Any]],
        final_unit: OutboundUnit | None,
        config: AppConfig,
        connection_id: str | None = None,
        lossy: Collection[FrameKind] = (),
    ) -> None:
        self.connection_id = connection_id or new_connection_id()
        self.stats = ConnectionStats()

        self._config = config
        self._transport = transport
        self._errors = ErrorChannel(capacity=config.error_channel_capacity)

        self._writer = FrameWriter(
            transport,
            encode,
            stats=self.stats,
            connection_id=self.connection_id,
        )
        self._lifecycle = LifecycleController(
            transport=transport,
            writer=self._writer,
            channels=list(routes.values()),
            errors=self._errors,
            stats=self.stats,
            final_unit=final_unit,
            connection_id=self.connection_id,
        )
        self._dispatcher = Dispatcher(
            transport=transport,
            decode=decode,
            routes=routes,
            errors=self._errors,
            lifecycle=self._lifecycle,
            stats=self.stats,
            connection_id=self.connection_id,
            lossy=lossy,
        )
        self._task: asyncio.Task[None] | None = None

    # -------------------------
    # Lifecycle
    # -------------------------

    def start(self) -> None:
        """Spawn the dispatcher task. Called once by the connect() service."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(
            self._dispatcher.run(),
            name=f"dispatch-{self.connection_id}",
        )
        self._lifecycle.attach_dispatcher(self._task)

    async def close(self) -> None:
        """
        Close the connection.

        Sends the final control unit (best effort), closes the socket,
        waits for the dispatcher and closes every channel. Safe to call
        any number of times, concurrently.
        """
        await self._lifecycle.close()

    @property
    def state(self) -> ConnectionState:
        return self._lifecycle.state

    @property
    def closed(self) -> bool:
        return self._lifecycle.finalized

    async def __aenter__(self) -> DuplexConnection:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------
    # Outputs
    # -------------------------

    def errors(self) -> ErrorChannel:
        """
        Asynchronous errors (decode, server, transport).

        Closes together with the output channels.
        """
        return self._errors

    # -------------------------
    # Writes
    # -------------------------

    async def _send(self, unit: OutboundUnit) -> None:
        await self._writer.send(unit)


async def send_init_frame(
    transport: Transport,
    payload: str,
    *,
    url: str,
    connection_id: str,
) -> None:
    """
    Send the initial configuration frame on a freshly opened socket.

    The connection is not handed to the caller until this succeeds.

    Raises:
        ConnectError after closing the transport if the send fails.
    """
    try:
        await transport.send(payload)
    except Exception as e:  # pylint: disable=broad-exception-caught
        log_ws_event(
            "WS_CONNECT_FAILED",
            connection_id=connection_id,
            url=url,
            error=f"init frame: {type(e).__name__}: {e}",
        )
        await transport.close()
        raise ConnectError(url, f"failed to send init message: {e}") from e

    log_ws_event("WS_INIT_SENT", connection_id=connection_id, url=url)
