"""
PROTOCOL-AS-CONSTANTS
---------------------
Single source of truth for wire, buffer and audio-format constants.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Endpoints & Auth
# =============================================================================

DEFAULT_BASE_URL: Final[str] = "https://api.elevenlabs.io"

TTS_STREAM_INPUT_PATH: Final[str] = "/v1/text-to-speech/{voice_id}/stream-input"
STT_REALTIME_PATH: Final[str] = "/v1/speech-to-text/realtime"

API_KEY_HEADER: Final[str] = "xi-api-key"
API_KEY_ENV_VAR: Final[str] = "ELEVENLABS_API_KEY"

# =============================================================================
# WebSocket transport
# =============================================================================

# RFC 6455: 1000 = normal closure, 1001 = going away
WS_CLOSE_NORMAL: Final[int] = 1000
WS_CLOSE_GOING_AWAY: Final[int] = 1001
WS_NORMAL_CLOSE_CODES: Final[Tuple[int, ...]] = (WS_CLOSE_NORMAL, WS_CLOSE_GOING_AWAY)

WS_OPEN_TIMEOUT_S: Final[float] = 10.0
WS_MAX_MESSAGE_BYTES: Final[int] = 2**22

# =============================================================================
# Channel capacities (backpressure)
# =============================================================================

# Dispatcher blocks once an output channel holds this many undelivered items.
OUTPUT_CHANNEL_CAPACITY: Final[int] = 100

# Errors beyond this depth are dropped (counted + logged), never block.
ERROR_CHANNEL_CAPACITY: Final[int] = 16

# =============================================================================
# Synthesis defaults  (low-latency profile)
# =============================================================================

DEFAULT_TTS_MODEL_ID: Final[str] = "eleven_turbo_v2_5"
DEFAULT_TTS_OUTPUT_FORMAT: Final[str] = "pcm_16000"
DEFAULT_OPTIMIZE_STREAMING_LATENCY: Final[int] = 3

OPTIMIZE_STREAMING_LATENCY_MIN: Final[int] = 0
OPTIMIZE_STREAMING_LATENCY_MAX: Final[int] = 4

VOICE_SETTING_MIN: Final[float] = 0.0
VOICE_SETTING_MAX: Final[float] = 1.0

# Single space: opens a generation context without producing audio.
TTS_INIT_TEXT: Final[str] = " "
TTS_TRIGGER_TEXT: Final[str] = " "
# Empty text: end of input for the current generation.
TTS_EOS_TEXT: Final[str] = ""

PCM_OUTPUT_FORMATS: Final[Tuple[str, ...]] = (
    "pcm_16000", "pcm_22050", "pcm_24000", "pcm_44100",
)

# =============================================================================
# Transcription defaults
# =============================================================================

DEFAULT_STT_MODEL_ID: Final[str] = "scribe_v1"
DEFAULT_STT_SAMPLE_RATE_HZ: Final[int] = 16_000
DEFAULT_STT_ENCODING: Final[str] = "pcm_s16le"

STT_ENCODINGS: Final[Tuple[str, ...]] = ("pcm_s16le", "pcm_mulaw")

STT_MSG_CONFIG: Final[str] = "config"
STT_MSG_AUDIO: Final[str] = "audio"
STT_MSG_END_OF_STREAM: Final[str] = "end_of_stream"
STT_MSG_TRANSCRIPT: Final[str] = "transcript"
STT_MSG_ERROR: Final[str] = "error"

# =============================================================================
# Audio format (PCM16 mono)
# =============================================================================

AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)

# Chunk duration used when feeding pre-recorded audio into transcription.
STT_CHUNK_MS: Final[int] = 100
