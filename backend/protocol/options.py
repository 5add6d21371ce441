"""
Connection options for the synthesis and transcription sockets.

Options are immutable; they are fixed for the lifetime of a connection
and split between the handshake URL (query parameters) and the initial
configuration frame.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import (
    DEFAULT_OPTIMIZE_STREAMING_LATENCY,
    DEFAULT_STT_ENCODING,
    DEFAULT_STT_MODEL_ID,
    DEFAULT_STT_SAMPLE_RATE_HZ,
    DEFAULT_TTS_MODEL_ID,
    DEFAULT_TTS_OUTPUT_FORMAT,
    OPTIMIZE_STREAMING_LATENCY_MAX,
    OPTIMIZE_STREAMING_LATENCY_MIN,
    STT_ENCODINGS,
    VOICE_SETTING_MAX,
    VOICE_SETTING_MIN,
)
from streaming.errors import ValidationError


def _check_unit_range(field_name: str, value: float) -> None:
    if not VOICE_SETTING_MIN <= value <= VOICE_SETTING_MAX:
        raise ValidationError(
            field_name,
            f"must be between {VOICE_SETTING_MIN} and {VOICE_SETTING_MAX}",
        )


@dataclass(frozen=True)
class VoiceSettings:
    """Voice parameters sent once in the synthesis initial frame."""
    stability: float
    similarity_boost: float
    style: float = 0.0
    use_speaker_boost: bool = False

    def validate(self) -> None:
        """Raise ValidationError if any value is out of range."""
        _check_unit_range("stability", self.stability)
        _check_unit_range("similarity_boost", self.similarity_boost)
        _check_unit_range("style", self.style)


@dataclass(frozen=True)
class TTSOptions:
    """
    Synthesis socket options.

    model_id, output_format, optimize_streaming_latency, enable_ssml_parsing,
    language_code and inactivity_timeout_s go on the URL; voice_settings,
    chunk_length_schedule and pronunciation_dictionary_ids go in the
    initial frame.
    """
    model_id: str = DEFAULT_TTS_MODEL_ID
    output_format: str = DEFAULT_TTS_OUTPUT_FORMAT
    voice_settings: VoiceSettings | None = None
    optimize_streaming_latency: int = 0
    enable_ssml_parsing: bool = False
    language_code: str = ""
    chunk_length_schedule: tuple[int, ...] = ()
    inactivity_timeout_s: int = 0
    pronunciation_dictionary_ids: tuple[str, ...] = ()

    def validate(self) -> None:
        """Raise ValidationError on out-of-range values."""
        if not (
            OPTIMIZE_STREAMING_LATENCY_MIN
            <= self.optimize_streaming_latency
            <= OPTIMIZE_STREAMING_LATENCY_MAX
        ):
            raise ValidationError(
                "optimize_streaming_latency",
                f"must be between {OPTIMIZE_STREAMING_LATENCY_MIN} "
                f"and {OPTIMIZE_STREAMING_LATENCY_MAX}",
            )
        if self.inactivity_timeout_s < 0:
            raise ValidationError("inactivity_timeout_s", "must be >= 0")
        if any(n <= 0 for n in self.chunk_length_schedule):
            raise ValidationError("chunk_length_schedule", "entries must be > 0")
        if self.voice_settings is not None:
            self.voice_settings.validate()


@dataclass(frozen=True)
class STTOptions:
    """
    Transcription socket options.

    Only model_id goes on the URL; everything else is carried by the
    initial "config" frame.
    """
    model_id: str = DEFAULT_STT_MODEL_ID
    language_code: str = ""
    sample_rate_hz: int = DEFAULT_STT_SAMPLE_RATE_HZ
    encoding: str = DEFAULT_STT_ENCODING
    enable_partials: bool = False
    enable_word_timestamps: bool = False
    max_alternatives: int = 0

    def validate(self) -> None:
        """Raise ValidationError on out-of-range values."""
        if self.sample_rate_hz <= 0:
            raise ValidationError("sample_rate_hz", "must be > 0")
        if self.encoding and self.encoding not in STT_ENCODINGS:
            raise ValidationError(
                "encoding", f"must be one of {', '.join(STT_ENCODINGS)}"
            )
        if self.max_alternatives < 0:
            raise ValidationError("max_alternatives", "must be >= 0")


def default_tts_options() -> TTSOptions:
    """Low-latency synthesis defaults: turbo model, raw PCM 16 kHz, latency level 3."""
    return TTSOptions(
        model_id=DEFAULT_TTS_MODEL_ID,
        output_format=DEFAULT_TTS_OUTPUT_FORMAT,
        optimize_streaming_latency=DEFAULT_OPTIMIZE_STREAMING_LATENCY,
    )


def default_stt_options() -> STTOptions:
    """Realtime transcription defaults with partials and word timestamps on."""
    return STTOptions(
        model_id=DEFAULT_STT_MODEL_ID,
        sample_rate_hz=DEFAULT_STT_SAMPLE_RATE_HZ,
        encoding=DEFAULT_STT_ENCODING,
        enable_partials=True,
        enable_word_timestamps=True,
    )
