"""
Frame primitives exchanged over the streaming socket.

Pure data containers only.
No encoding, no I/O, no timing logic.

Outbound units are built by the writer from caller calls.
Inbound frames are built only by the codec on behalf of the dispatcher;
callers never construct them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


# =============================================================================
# Outbound
# =============================================================================

class ControlKind(str, Enum):
    """
    Control signals a caller can send.

    FLUSH:
        Synthesis end of input; finalize and return buffered audio.
    END_OF_INPUT:
        Transcription end of stream; finalize pending transcripts.
    TRIGGER_GENERATION:
        Synthesis only; generate audio for buffered text now.
    CLOSE:
        Final unit sent by the lifecycle controller before the socket closes.
    """

    FLUSH = "flush"
    END_OF_INPUT = "end_of_input"
    TRIGGER_GENERATION = "trigger_generation"
    CLOSE = "close"


# Controls after which chunk units are rejected.
INPUT_ENDING_CONTROLS: frozenset[ControlKind] = frozenset(
    {ControlKind.FLUSH, ControlKind.END_OF_INPUT, ControlKind.CLOSE}
)


@dataclass(frozen=True)
class TextChunk:
    """A piece of text for synthesis, optionally bound to a context."""
    text: str
    context_id: str | None = None


@dataclass(frozen=True)
class AudioChunk:
    """Raw audio bytes for transcription (base64-encoded on the wire)."""
    audio: bytes


@dataclass(frozen=True)
class ControlSignal:
    """A control-only unit."""
    kind: ControlKind


OutboundUnit = Union[TextChunk, AudioChunk, ControlSignal]


# =============================================================================
# Inbound
# =============================================================================

class FrameKind(str, Enum):
    """
    Discriminant for inbound frames; also the routing key in the dispatcher.
    """

    AUDIO = "audio"
    ALIGNMENT = "alignment"
    TRANSCRIPT = "transcript"
    ERROR = "error"


@dataclass(frozen=True)
class Word:
    """
    One transcribed word with timing in seconds.

    Produced only inside TranscriptFrame.
    """
    word: str
    start: float
    end: float
    confidence: float | None = None
    speaker: str | None = None


@dataclass(frozen=True)
class AudioFrame:
    """
    Decoded synthesis audio.

    audio:
        Opaque audio bytes in the connection's output format.
    is_final:
        True when the server marked the carrying message final.
    """
    audio: bytes
    is_final: bool = False
    kind: FrameKind = field(default=FrameKind.AUDIO, init=False)


@dataclass(frozen=True)
class AlignmentFrame:
    """
    Per-character timing for synthesized audio.

    The three tuples are parallel: characters[i] spans
    start_times[i]..end_times[i] seconds.
    normalized is True when the server's normalized alignment was used.
    """
    characters: tuple[str, ...]
    start_times: tuple[float, ...]
    end_times: tuple[float, ...]
    normalized: bool = False
    kind: FrameKind = field(default=FrameKind.ALIGNMENT, init=False)


@dataclass(frozen=True)
class TranscriptFrame:
    """
    A partial or final transcription result.
    """
    text: str
    is_final: bool
    confidence: float | None = None
    words: tuple[Word, ...] = ()
    language_code: str | None = None
    start_time: float | None = None
    end_time: float | None = None
    kind: FrameKind = field(default=FrameKind.TRANSCRIPT, init=False)


@dataclass(frozen=True)
class ErrorFrame:
    """A server-reported error carried in a well-formed frame."""
    message: str
    code: int | None = None
    kind: FrameKind = field(default=FrameKind.ERROR, init=False)


InboundFrame = Union[AudioFrame, AlignmentFrame, TranscriptFrame, ErrorFrame]
