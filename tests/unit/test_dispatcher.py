# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import base64
import dataclasses

import pytest

from adapters.asr.websocket_stt import WebSocketSTTConnection
from adapters.tts.websocket_tts import WebSocketTTSConnection
from protocol.frames import AlignmentFrame, TranscriptFrame
from protocol.options import STTOptions, TTSOptions
from streaming.errors import FrameDecodeError, ServerError, TransportReadError
from streaming.state import ConnectionState


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _tts(fake_transport, config) -> WebSocketTTSConnection:
    conn = WebSocketTTSConnection(fake_transport, voice_id="v1", options=TTSOptions(), config=config)
    conn.start()
    return conn


def _stt(fake_transport, config) -> WebSocketSTTConnection:
    conn = WebSocketSTTConnection(fake_transport, options=STTOptions(), config=config)
    conn.start()
    return conn


async def _drain(channel) -> list:
    return [item async for item in channel]


@pytest.mark.asyncio
async def test_every_tts_frame_lands_on_exactly_one_channel(fake_transport, app_config) -> None:
    conn = _tts(fake_transport, app_config)

    fake_transport.push_json({"audio": _b64(b"\x01\x02")})
    fake_transport.push_json({
        "audio": _b64(b"\x03\x04"),
        "normalizedAlignment": {
            "characters": ["h", "i"],
            "character_start_times_seconds": [0.0, 0.1],
            "character_end_times_seconds": [0.1, 0.2],
        },
    })
    fake_transport.push("{not json")
    fake_transport.push_json({"error": "voice not found", "code": 404})
    fake_transport.push_json({"isFinal": True})
    fake_transport.push_close(1000)

    audio = await _drain(conn.audio())
    alignments = await _drain(conn.alignments())
    errors = await _drain(conn.errors())

    assert audio == [b"\x01\x02", b"\x03\x04"]
    assert len(alignments) == 1 and isinstance(alignments[0], AlignmentFrame)
    assert [type(e) for e in errors] == [FrameDecodeError, ServerError]
    assert errors[1].code == 404

    assert conn.stats.messages_received == 5
    assert conn.stats.frames_routed == {"audio": 2, "alignment": 1}
    assert conn.stats.errors_reported == 2
    assert conn.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_decode_error_does_not_stop_reading(fake_transport, app_config) -> None:
    conn = _stt(fake_transport, app_config)

    fake_transport.push("garbage")
    fake_transport.push_json({"type": "transcript", "text": "hello", "is_final": True})
    fake_transport.push_close(1000)

    transcripts = await _drain(conn.transcripts())

    assert len(transcripts) == 1
    assert isinstance(transcripts[0], TranscriptFrame)
    assert transcripts[0].text == "hello"
    assert isinstance(await conn.errors().get(), FrameDecodeError)


@pytest.mark.asyncio
async def test_normal_closure_reports_no_error(fake_transport, app_config) -> None:
    conn = _stt(fake_transport, app_config)
    fake_transport.push_close(1001, "going away")

    assert await _drain(conn.transcripts()) == []
    assert await _drain(conn.errors()) == []


@pytest.mark.asyncio
async def test_abnormal_closure_reported_once_then_channels_close(
    fake_transport, app_config, captured_events
) -> None:
    conn = _tts(fake_transport, app_config)
    fake_transport.push_json({"audio": _b64(b"\xaa")})
    fake_transport.push_close(1011, "internal error")

    audio = await _drain(conn.audio())
    errors = await _drain(conn.errors())

    assert audio == [b"\xaa"]
    assert len(errors) == 1
    assert isinstance(errors[0], TransportReadError)
    assert errors[0].close_code == 1011
    assert conn.alignments().closed

    types = [e["event_type"] for e in captured_events]
    assert types.count("WS_READ_FAILED") == 1


@pytest.mark.asyncio
async def test_socket_exception_is_a_read_failure(fake_transport, app_config) -> None:
    conn = _stt(fake_transport, app_config)
    fake_transport.push_error(ConnectionResetError("reset by peer"))

    errors = await _drain(conn.errors())

    assert len(errors) == 1
    assert isinstance(errors[0], TransportReadError)
    assert "reset by peer" in str(errors[0])
    assert conn.transcripts().closed


@pytest.mark.asyncio
async def test_caller_close_is_not_a_read_failure(fake_transport, app_config) -> None:
    conn = _stt(fake_transport, app_config)
    await conn.close()
    assert await _drain(conn.errors()) == []


@pytest.mark.asyncio
async def test_error_overflow_is_counted_and_logged(fake_transport, app_config, captured_events) -> None:
    config = dataclasses.replace(app_config, error_channel_capacity=2)
    conn = _stt(fake_transport, config)

    for _ in range(5):
        fake_transport.push("bad frame")
    fake_transport.push_close(1000)

    await _drain(conn.transcripts())

    assert len(conn.errors()) == 2
    assert conn.stats.errors_dropped == 3
    dropped = [e for e in captured_events if e["event_type"] == "WS_ERROR_DROPPED"]
    assert len(dropped) == 3


@pytest.mark.asyncio
async def test_backpressure_bounds_undelivered_frames(fake_transport, app_config) -> None:
    config = dataclasses.replace(app_config, output_channel_capacity=4)
    conn = _tts(fake_transport, config)

    for i in range(10):
        fake_transport.push_json({"audio": _b64(bytes([i]))})

    # Let the dispatcher run until it parks on the full channel.
    for _ in range(50):
        await asyncio.sleep(0)
        if conn.audio().has_blocked_producer():
            break

    assert conn.audio().has_blocked_producer()
    assert len(conn.audio()) == 4

    fake_transport.push_close(1000)
    received = []
    async for chunk in conn.audio():
        received.append(chunk)
        assert len(conn.audio()) <= 4

    assert received == [bytes([i]) for i in range(10)]


@pytest.mark.asyncio
async def test_close_unblocks_dispatcher_parked_on_full_channel(fake_transport, app_config) -> None:
    config = dataclasses.replace(app_config, output_channel_capacity=1)
    conn = _tts(fake_transport, config)

    for i in range(3):
        fake_transport.push_json({"audio": _b64(bytes([i]))})

    for _ in range(50):
        await asyncio.sleep(0)
        if conn.audio().has_blocked_producer():
            break

    await asyncio.wait_for(conn.close(), timeout=1.0)

    # Buffered audio is still delivered after close.
    assert await _drain(conn.audio()) == [b"\x00"]


_ALIGNMENT = {
    "characters": ["o", "k"],
    "character_start_times_seconds": [0.0, 0.1],
    "character_end_times_seconds": [0.1, 0.2],
}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ({"audio": _b64(b"\x10\x20")}, {"audio": 1, "alignments": 0, "errors": 0}),
        ({"normalizedAlignment": _ALIGNMENT}, {"audio": 0, "alignments": 1, "errors": 0}),
        ({"alignment": _ALIGNMENT}, {"audio": 0, "alignments": 1, "errors": 0}),
        ({"error": "quota exceeded"}, {"audio": 0, "alignments": 0, "errors": 1}),
    ],
)
async def test_tts_frame_routes_to_one_channel_only(
    fake_transport, app_config, message, expected
) -> None:
    conn = _tts(fake_transport, app_config)
    fake_transport.push_json(message)
    fake_transport.push_close(1000)

    counts = {
        "audio": len(await _drain(conn.audio())),
        "alignments": len(await _drain(conn.alignments())),
        "errors": len(await _drain(conn.errors())),
    }

    assert counts == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("message", "expected"),
    [
        (
            {"type": "transcript", "text": "hel", "is_final": False},
            {"transcripts": 1, "errors": 0},
        ),
        (
            {"type": "transcript", "text": "hello", "is_final": True},
            {"transcripts": 1, "errors": 0},
        ),
        ({"type": "error", "message": "bad audio"}, {"transcripts": 0, "errors": 1}),
    ],
)
async def test_stt_frame_routes_to_one_channel_only(
    fake_transport, app_config, message, expected
) -> None:
    conn = _stt(fake_transport, app_config)
    fake_transport.push_json(message)
    fake_transport.push_close(1000)

    transcripts = await _drain(conn.transcripts())
    errors = await _drain(conn.errors())

    assert {"transcripts": len(transcripts), "errors": len(errors)} == expected
    if transcripts:
        assert transcripts[0].is_final is message["is_final"]
        assert transcripts[0].text == message["text"]


@pytest.mark.asyncio
async def test_unread_alignments_never_block_audio(
    fake_transport, app_config, captured_events
) -> None:
    config = dataclasses.replace(app_config, output_channel_capacity=2)
    conn = _tts(fake_transport, config)

    for i in range(6):
        fake_transport.push_json({"audio": _b64(bytes([i])), "alignment": _ALIGNMENT})
    fake_transport.push_close(1000)

    received = [chunk async for chunk in conn.audio()]

    assert received == [bytes([i]) for i in range(6)]
    assert len(conn.alignments()) == 2
    assert conn.stats.frames_dropped == {"alignment": 4}
    dropped = [e for e in captured_events if e["event_type"] == "WS_FRAME_DROPPED"]
    assert len(dropped) == 4
    assert dropped[-1]["kind"] == "alignment"
