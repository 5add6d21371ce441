# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import pytest

from observability.metrics import ConnectionStats
from protocol.codec import encode_stt_unit, encode_tts_unit
from protocol.frames import AudioChunk, ControlKind, ControlSignal, TextChunk
from streaming.errors import ClosedConnectionError
from streaming.writer import FrameWriter


def _writer(transport, encode=encode_tts_unit) -> FrameWriter:
    return FrameWriter(transport, encode, stats=ConnectionStats(), connection_id="conn_test")


@pytest.mark.asyncio
async def test_single_caller_order_is_preserved(fake_transport) -> None:
    writer = _writer(fake_transport)

    for text in ["a", "b", "c", "d"]:
        await writer.send(TextChunk(text))
    await writer.send(ControlSignal(ControlKind.FLUSH))

    assert [m.get("text") for m in fake_transport.sent_json()] == ["a", "b", "c", "d", ""]


@pytest.mark.asyncio
async def test_concurrent_callers_each_send_exactly_once(fake_transport) -> None:
    writer = _writer(fake_transport)

    await asyncio.gather(*(writer.send(TextChunk(f"t{i}")) for i in range(50)))

    texts = [m["text"] for m in fake_transport.sent_json()]
    assert sorted(texts) == sorted(f"t{i}" for i in range(50))
    assert len(texts) == 50


@pytest.mark.asyncio
async def test_empty_chunks_are_noops(fake_transport) -> None:
    writer = _writer(fake_transport, encode_stt_unit)

    await writer.send(AudioChunk(b""))
    assert fake_transport.sent == []

    writer_tts = _writer(fake_transport)
    await writer_tts.send(TextChunk(""))
    assert fake_transport.sent == []


@pytest.mark.asyncio
async def test_writes_after_seal_raise_and_never_reach_the_wire(fake_transport) -> None:
    writer = _writer(fake_transport)

    assert await writer.seal(ControlSignal(ControlKind.CLOSE)) is True
    assert fake_transport.sent_json() == [{"close_connection": True}]

    with pytest.raises(ClosedConnectionError):
        await writer.send(TextChunk("late"))
    with pytest.raises(ClosedConnectionError):
        await writer.send(ControlSignal(ControlKind.TRIGGER_GENERATION))

    assert len(fake_transport.sent) == 1


@pytest.mark.asyncio
async def test_seal_is_one_shot(fake_transport) -> None:
    writer = _writer(fake_transport)

    assert await writer.seal(ControlSignal(ControlKind.CLOSE)) is True
    assert await writer.seal(ControlSignal(ControlKind.CLOSE)) is False
    assert len(fake_transport.sent) == 1


@pytest.mark.asyncio
async def test_chunks_after_end_of_input_are_rejected(fake_transport) -> None:
    writer = _writer(fake_transport, encode_stt_unit)

    await writer.send(AudioChunk(b"\x01\x02"))
    await writer.send(ControlSignal(ControlKind.END_OF_INPUT))
    assert writer.input_ended

    with pytest.raises(ClosedConnectionError):
        await writer.send(AudioChunk(b"\x03\x04"))

    assert len(fake_transport.sent) == 2


@pytest.mark.asyncio
async def test_failed_final_send_is_logged_not_raised(fake_transport, captured_events) -> None:
    fake_transport.fail_send = RuntimeError("socket gone")
    writer = _writer(fake_transport)

    assert await writer.seal(ControlSignal(ControlKind.CLOSE)) is True

    assert writer.closed
    failed = [e for e in captured_events if e["event_type"] == "WS_FINAL_SEND_FAILED"]
    assert len(failed) == 1
    assert "socket gone" in failed[0]["error"]


@pytest.mark.asyncio
async def test_peer_closed_socket_surfaces_as_closed_connection(fake_transport) -> None:
    writer = _writer(fake_transport)
    await fake_transport.close()

    with pytest.raises(ClosedConnectionError):
        await writer.send(TextChunk("hi"))


@pytest.mark.asyncio
async def test_units_sent_counter(fake_transport) -> None:
    stats = ConnectionStats()
    writer = FrameWriter(fake_transport, encode_tts_unit, stats=stats, connection_id="c")

    await writer.send(TextChunk("a"))
    await writer.send(TextChunk(""))
    await writer.send(ControlSignal(ControlKind.FLUSH))

    assert stats.units_sent == 2
