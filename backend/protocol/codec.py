"""
JSON frame codec for the synthesis and transcription sockets.

Outbound (client -> server):

    synthesis      {"text": "...", "context_id"?: "..."}
                   {"text": "", "flush": true}
                   {"text": " ", "try_trigger_generation": true}
                   {"close_connection": true}
    transcription  {"type": "audio", "audio": "<base64>"}
                   {"type": "end_of_stream"}

Inbound (server -> client):

    synthesis      {"audio"?, "isFinal"?, "normalizedAlignment"?/"alignment"?,
                    "error"?, "message"?, "code"?}
    transcription  {"type", "text"?, "is_final"?, "confidence"?, "words"?,
                    "language_code"?, "start_time"?, "end_time"?,
                    "error"?, "message"?}

Usage example:

    payload = encode_tts_unit(TextChunk(text="Hello, "))
    await transport.send(payload)

    for frame in decode_tts_message(raw):
        route(frame.kind, frame)

Pure and stateless: every function maps one value to another and either
returns or raises FrameDecodeError / ValueError.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from constants import (
    STT_MSG_AUDIO,
    STT_MSG_CONFIG,
    STT_MSG_END_OF_STREAM,
    STT_MSG_ERROR,
    STT_MSG_TRANSCRIPT,
    TTS_EOS_TEXT,
    TTS_INIT_TEXT,
    TTS_TRIGGER_TEXT,
)
from protocol.frames import (
    AlignmentFrame,
    AudioChunk,
    AudioFrame,
    ControlKind,
    ControlSignal,
    ErrorFrame,
    InboundFrame,
    OutboundUnit,
    TextChunk,
    TranscriptFrame,
    Word,
)
from protocol.options import STTOptions, TTSOptions
from streaming.errors import FrameDecodeError


# -------------------------
# Low-level helpers
# -------------------------

def _dumps(message: dict[str, Any]) -> str:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))


def _loads_object(raw: str | bytes) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"frame is not UTF-8: {e}", raw=raw) from e

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise FrameDecodeError(str(e), raw=raw) from e

    if not isinstance(data, dict):
        raise FrameDecodeError(
            f"expected a JSON object, got {type(data).__name__}", raw=raw
        )
    return data


def _opt_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise FrameDecodeError(f"field {key!r} must be a string")
    return value


def _opt_float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FrameDecodeError(f"field {key!r} must be a number")
    return float(value)


def _opt_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FrameDecodeError(f"failed to decode audio: {e}") from e


# =============================================================================
# Synthesis
# =============================================================================

def encode_tts_init(options: TTSOptions) -> str:
    """
    Encode the synthesis initial frame.

    A single-space text opens the generation context; optional voice
    settings, chunk schedule and dictionary locators ride along.
    """
    message: dict[str, Any] = {"text": TTS_INIT_TEXT}

    vs = options.voice_settings
    if vs is not None:
        settings: dict[str, Any] = {
            "stability": vs.stability,
            "similarity_boost": vs.similarity_boost,
        }
        if vs.style:
            settings["style"] = vs.style
        if vs.use_speaker_boost:
            settings["use_speaker_boost"] = True
        message["voice_settings"] = settings

    if options.chunk_length_schedule:
        message["generation_config"] = {
            "chunk_length_schedule": list(options.chunk_length_schedule),
        }

    if options.pronunciation_dictionary_ids:
        message["pronunciation_dictionary_locators"] = list(
            options.pronunciation_dictionary_ids
        )

    return _dumps(message)


def encode_tts_unit(unit: OutboundUnit) -> str:
    """
    Encode one outbound synthesis unit.

    Raises:
        ValueError for units the synthesis socket does not accept
        (audio chunks, END_OF_INPUT).
    """
    if isinstance(unit, TextChunk):
        message: dict[str, Any] = {"text": unit.text}
        if unit.context_id:
            message["context_id"] = unit.context_id
        return _dumps(message)

    if isinstance(unit, ControlSignal):
        if unit.kind is ControlKind.FLUSH:
            return _dumps({"text": TTS_EOS_TEXT, "flush": True})
        if unit.kind is ControlKind.TRIGGER_GENERATION:
            return _dumps({"text": TTS_TRIGGER_TEXT, "try_trigger_generation": True})
        if unit.kind is ControlKind.CLOSE:
            return _dumps({"close_connection": True})

    raise ValueError(f"unsupported synthesis unit: {unit!r}")


def _decode_alignment(value: Any, *, normalized: bool) -> AlignmentFrame:
    if not isinstance(value, dict):
        raise FrameDecodeError("alignment must be an object")

    characters = value.get("characters") or []
    starts = value.get("character_start_times_seconds") or []
    ends = value.get("character_end_times_seconds") or []
    if not all(isinstance(v, list) for v in (characters, starts, ends)):
        raise FrameDecodeError("alignment fields must be arrays")

    try:
        return AlignmentFrame(
            characters=tuple(str(c) for c in characters),
            start_times=tuple(float(s) for s in starts),
            end_times=tuple(float(e) for e in ends),
            normalized=normalized,
        )
    except (TypeError, ValueError) as e:
        raise FrameDecodeError(f"bad alignment timing: {e}") from e


def decode_tts_message(raw: str | bytes) -> list[InboundFrame]:
    """
    Decode one synthesis message into zero or more frames.

    A message that carries an error yields exactly one ErrorFrame.
    Otherwise it yields an AudioFrame when non-empty audio is present,
    followed by an AlignmentFrame when alignment is present (normalized
    alignment wins over raw alignment). Keep-alive / final markers with
    neither yield nothing.

    Raises:
        FrameDecodeError on malformed JSON, wrong shapes or bad base64.
    """
    data = _loads_object(raw)

    error = _opt_str(data, "error") or _opt_str(data, "message")
    if error:
        return [ErrorFrame(message=error, code=_opt_int(data, "code"))]

    frames: list[InboundFrame] = []

    audio_b64 = _opt_str(data, "audio")
    if audio_b64:
        audio = _b64decode(audio_b64)
        if audio:
            frames.append(AudioFrame(audio=audio, is_final=bool(data.get("isFinal"))))

    if data.get("normalizedAlignment") is not None:
        frames.append(_decode_alignment(data["normalizedAlignment"], normalized=True))
    elif data.get("alignment") is not None:
        frames.append(_decode_alignment(data["alignment"], normalized=False))

    return frames


# =============================================================================
# Transcription
# =============================================================================

def encode_stt_init(options: STTOptions) -> str:
    """Encode the transcription "config" frame."""
    message: dict[str, Any] = {
        "type": STT_MSG_CONFIG,
        "sample_rate": options.sample_rate_hz,
        "encoding": options.encoding,
        "enable_partials": options.enable_partials,
        "enable_word_timestamps": options.enable_word_timestamps,
    }
    if options.language_code:
        message["language_code"] = options.language_code
    if options.max_alternatives > 0:
        message["max_alternatives"] = options.max_alternatives
    return _dumps(message)


def encode_stt_unit(unit: OutboundUnit) -> str:
    """
    Encode one outbound transcription unit.

    Audio is base64-encoded. END_OF_INPUT and CLOSE both map to
    end_of_stream; the server finalizes on either.

    Raises:
        ValueError for units the transcription socket does not accept.
    """
    if isinstance(unit, AudioChunk):
        return _dumps({
            "type": STT_MSG_AUDIO,
            "audio": base64.b64encode(unit.audio).decode("ascii"),
        })

    if isinstance(unit, ControlSignal) and unit.kind in (
        ControlKind.END_OF_INPUT,
        ControlKind.CLOSE,
    ):
        return _dumps({"type": STT_MSG_END_OF_STREAM})

    raise ValueError(f"unsupported transcription unit: {unit!r}")


def _decode_words(value: Any) -> tuple[Word, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise FrameDecodeError("words must be an array")

    words: list[Word] = []
    for item in value:
        if not isinstance(item, dict):
            raise FrameDecodeError("word entries must be objects")
        speaker = item.get("speaker", item.get("speaker_id"))
        words.append(
            Word(
                word=_opt_str(item, "word"),
                start=_opt_float(item, "start") or 0.0,
                end=_opt_float(item, "end") or 0.0,
                confidence=_opt_float(item, "confidence"),
                speaker=str(speaker) if speaker is not None else None,
            )
        )
    return tuple(words)


def decode_stt_message(raw: str | bytes) -> list[InboundFrame]:
    """
    Decode one transcription message into zero or one frame.

    - "error" field, or type "error" with a message -> ErrorFrame
    - type "transcript", or any text/word data      -> TranscriptFrame
    - anything else (session notices, acks)          -> no frames

    Raises:
        FrameDecodeError on malformed JSON or wrong shapes.
    """
    data = _loads_object(raw)
    msg_type = _opt_str(data, "type")

    error = _opt_str(data, "error")
    if not error and msg_type == STT_MSG_ERROR:
        error = _opt_str(data, "message")
    if error:
        return [ErrorFrame(message=error, code=_opt_int(data, "code"))]

    text = _opt_str(data, "text")
    words = _decode_words(data.get("words"))

    if msg_type == STT_MSG_TRANSCRIPT or text or words:
        return [
            TranscriptFrame(
                text=text,
                is_final=bool(data.get("is_final")),
                confidence=_opt_float(data, "confidence"),
                words=words,
                language_code=_opt_str(data, "language_code") or None,
                start_time=_opt_float(data, "start_time"),
                end_time=_opt_float(data, "end_time"),
            )
        ]

    return []
