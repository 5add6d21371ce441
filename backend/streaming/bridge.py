"""
Stream bridge: drive a connection from an input iterable and expose
its output as one channel.

Two concurrent loops per bridge:

- forwarder: connection output channel -> handle.output, until the
  connection channel closes or the bridge is cancelled
- feeder:    input chunks -> writer; on exhaustion send end-of-input
  (flush / end_of_stream), then wait for the forwarder to drain

While feeding, the first error on the connection's error channel stops
the bridge with that error. A failing input iterable or write also
ends the bridge, and that exception becomes the result of
handle.wait(). Cancellation (handle.cancel() or a caller-supplied
asyncio.Event) stops both loops and leaves
StreamCancelledError in the error slot. handle.output always closes
when the bridge ends, so `async for` over it terminates.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, AsyncIterable, Awaitable, Callable, Generic, Iterable, TypeVar

from observability.logger import log_ws_event
from streaming.channels import Channel, ChannelClosed, ErrorChannel
from streaming.errors import StreamCancelledError


T = TypeVar("T")

SendChunk = Callable[[Any], Awaitable[None]]
EndInput = Callable[[], Awaitable[None]]


async def _aiter(chunks: AsyncIterable[Any] | Iterable[Any]) -> AsyncGenerator[Any, None]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:  # type: ignore[union-attr]
            yield chunk
    else:
        for chunk in chunks:  # type: ignore[union-attr]
            yield chunk


async def _next(iterator: AsyncGenerator[Any, None]) -> tuple[bool, Any]:
    try:
        return True, await iterator.__anext__()
    except StopAsyncIteration:
        return False, None


class BridgeHandle(Generic[T]):
    """
    Caller's view of a running bridge.

    Usage:
        handle = connection.stream_text(["Hello, ", "world!"])
        async for pcm in handle.output:
            sink.write(pcm)
        error = await handle.wait()
    """

    def __init__(
        self,
        output: Channel[T],
        task: asyncio.Task[Exception | None],
        cancel_event: asyncio.Event,
    ) -> None:
        self.output = output
        self._task = task
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Stop feeding and forwarding; idempotent."""
        self._cancel_event.set()

    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> Exception | None:
        """
        Wait for the bridge to end.

        Returns:
            None on success, otherwise the error that stopped the bridge
            (StreamCancelledError after cancellation).
        """
        return await asyncio.shield(self._task)


class StreamBridge(Generic[T]):
    """
    Wires one input iterable to one connection.

    Args:
        source: the connection output channel to forward (audio or transcripts)
        errors: the connection error channel, watched while feeding
        send_chunk: writer call for one input chunk (send_text / send_audio)
        end_input: writer call once input is exhausted (flush / end_stream)
    """

    def __init__(
        self,
        *,
        source: Channel[T],
        errors: ErrorChannel,
        send_chunk: SendChunk,
        end_input: EndInput,
        capacity: int,
        connection_id: str,
        name: str,
    ) -> None:
        self._source = source
        self._errors = errors
        self._send_chunk = send_chunk
        self._end_input = end_input
        self._connection_id = connection_id
        self._name = name

        self._output: Channel[T] = Channel(capacity=capacity, name=f"{name}_out")
        self._chunks_sent = 0
        self._items_forwarded = 0

    def start(
        self,
        chunks: AsyncIterable[Any] | Iterable[Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> BridgeHandle[T]:
        """Spawn the bridge task and return its handle."""
        cancel_event = cancel if cancel is not None else asyncio.Event()
        task = asyncio.create_task(
            self._run(chunks, cancel_event),
            name=f"bridge-{self._name}-{self._connection_id}",
        )
        return BridgeHandle(self._output, task, cancel_event)

    # -------------------------
    # Task body
    # -------------------------

    async def _run(
        self,
        chunks: AsyncIterable[Any] | Iterable[Any],
        cancel_event: asyncio.Event,
    ) -> Exception | None:
        forwarder = asyncio.create_task(self._forward())
        cancelled = asyncio.create_task(cancel_event.wait())
        error: Exception | None = None

        try:
            error = await self._feed(chunks, cancelled)
            if error is None:
                error = await self._drain(forwarder, cancelled)
            return error
        finally:
            for task in (forwarder, cancelled):
                if not task.done():
                    task.cancel()
            await asyncio.wait({forwarder, cancelled})
            self._output.close()

            log_ws_event(
                "BRIDGE_DONE",
                connection_id=self._connection_id,
                bridge=self._name,
                chunks_sent=self._chunks_sent,
                items_forwarded=self._items_forwarded,
                error=None if error is None else f"{type(error).__name__}: {error}",
            )

    async def _forward(self) -> None:
        async for item in self._source:
            if not await self._output.put(item):
                return
            self._items_forwarded += 1

    async def _feed(
        self,
        chunks: AsyncIterable[Any] | Iterable[Any],
        cancelled: asyncio.Task[Any],
    ) -> Exception | None:
        iterator = _aiter(chunks)
        error_wait: asyncio.Task[Exception] | None = asyncio.create_task(self._errors.get())
        next_chunk: asyncio.Task[tuple[bool, Any]] | None = None

        try:
            while True:
                if next_chunk is None:
                    next_chunk = asyncio.create_task(_next(iterator))

                waiters: set[asyncio.Future[Any]] = {next_chunk, cancelled}
                if error_wait is not None:
                    waiters.add(error_wait)

                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if cancelled in done:
                    return StreamCancelledError()

                if error_wait is not None and error_wait in done:
                    try:
                        return error_wait.result()
                    except ChannelClosed:
                        # Connection finalized; the next write surfaces it.
                        error_wait = None

                if next_chunk not in done:
                    continue

                chunk_task, next_chunk = next_chunk, None
                try:
                    has_chunk, chunk = chunk_task.result()
                except Exception as e:  # pylint: disable=broad-exception-caught
                    log_ws_event(
                        "BRIDGE_INPUT_FAILED",
                        connection_id=self._connection_id,
                        bridge=self._name,
                        error=f"{type(e).__name__}: {e}",
                    )
                    return e
                if not has_chunk:
                    break

                try:
                    await self._send_chunk(chunk)
                except Exception as e:  # pylint: disable=broad-exception-caught
                    return e
                self._chunks_sent += 1

            try:
                await self._end_input()
            except Exception as e:  # pylint: disable=broad-exception-caught
                return e
            return None
        finally:
            if error_wait is not None and not error_wait.done():
                error_wait.cancel()
            if next_chunk is not None and not next_chunk.done():
                next_chunk.cancel()
                await asyncio.wait({next_chunk})
            await iterator.aclose()

    async def _drain(
        self,
        forwarder: asyncio.Task[None],
        cancelled: asyncio.Task[Any],
    ) -> Exception | None:
        done, _ = await asyncio.wait(
            {forwarder, cancelled}, return_when=asyncio.FIRST_COMPLETED
        )
        if forwarder in done:
            return None
        return StreamCancelledError()
