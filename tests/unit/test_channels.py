# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import pytest

from streaming.channels import Channel, ChannelClosed, ErrorChannel


@pytest.mark.asyncio
async def test_fifo_order_and_close_drains_buffer() -> None:
    ch: Channel[int] = Channel(capacity=4, name="t")
    for i in range(3):
        assert await ch.put(i)

    assert ch.close() is True
    assert ch.close() is False  # idempotent

    assert [item async for item in ch] == [0, 1, 2]

    with pytest.raises(ChannelClosed):
        await ch.get()


@pytest.mark.asyncio
async def test_put_after_close_is_refused() -> None:
    ch: Channel[int] = Channel(capacity=1, name="t")
    ch.close()
    assert await ch.put(1) is False
    assert ch.try_put(1) is False
    assert len(ch) == 0


@pytest.mark.asyncio
async def test_full_channel_blocks_until_consumer_reads() -> None:
    ch: Channel[int] = Channel(capacity=2, name="t")
    await ch.put(1)
    await ch.put(2)
    assert ch.is_full()

    blocked = asyncio.create_task(ch.put(3))
    await asyncio.sleep(0)
    assert not blocked.done()
    assert ch.has_blocked_producer()

    assert await ch.get() == 1
    assert await asyncio.wait_for(blocked, timeout=1.0) is True
    assert len(ch) == 2


@pytest.mark.asyncio
async def test_abort_puts_releases_blocked_producer() -> None:
    ch: Channel[int] = Channel(capacity=1, name="t")
    await ch.put(1)

    blocked = asyncio.create_task(ch.put(2))
    await asyncio.sleep(0)

    ch.abort_puts()

    assert await asyncio.wait_for(blocked, timeout=1.0) is False
    # Buffered items stay readable.
    assert await ch.get() == 1


@pytest.mark.asyncio
async def test_close_wakes_waiting_consumer() -> None:
    ch: Channel[int] = Channel(capacity=1, name="t")

    waiter = asyncio.create_task(ch.get())
    await asyncio.sleep(0)
    ch.close()

    with pytest.raises(ChannelClosed):
        await asyncio.wait_for(waiter, timeout=1.0)


@pytest.mark.asyncio
async def test_cancelled_consumer_does_not_lose_items() -> None:
    ch: Channel[int] = Channel(capacity=1, name="t")

    waiter = asyncio.create_task(ch.get())
    await asyncio.sleep(0)
    waiter.cancel()
    await asyncio.gather(waiter, return_exceptions=True)

    await ch.put(7)
    assert await ch.get() == 7


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Channel(capacity=0, name="t")


def test_error_channel_drops_and_counts_overflow() -> None:
    errors = ErrorChannel(capacity=2)

    assert errors.report(RuntimeError("a"))
    assert errors.report(RuntimeError("b"))
    assert errors.report(RuntimeError("c")) is False

    assert errors.dropped == 1
    assert len(errors) == 2


def test_snapshot_shape() -> None:
    ch: Channel[int] = Channel(capacity=3, name="audio")
    ch.try_put(1)
    assert ch.snapshot() == {"name": "audio", "items": 1, "capacity": 3, "closed": False}
