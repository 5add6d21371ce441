"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No connection logic
- No protocol constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    API_KEY_ENV_VAR,
    DEFAULT_BASE_URL,
    DEFAULT_STT_MODEL_ID,
    DEFAULT_TTS_MODEL_ID,
    ERROR_CHANNEL_CAPACITY,
    OUTPUT_CHANNEL_CAPACITY,
    WS_MAX_MESSAGE_BYTES,
    WS_OPEN_TIMEOUT_S,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable client configuration.

    Constructed once at process startup (or per test) and passed
    downward to the client facade and the connection services.
    """

    # ------------------------------------------------------------------
    # Credentials / endpoint
    # ------------------------------------------------------------------

    api_key: str | None
    base_url: str = DEFAULT_BASE_URL

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    open_timeout_s: float = WS_OPEN_TIMEOUT_S
    max_message_bytes: int = WS_MAX_MESSAGE_BYTES

    # ------------------------------------------------------------------
    # Backpressure
    # ------------------------------------------------------------------

    output_channel_capacity: int = OUTPUT_CHANNEL_CAPACITY
    error_channel_capacity: int = ERROR_CHANNEL_CAPACITY

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    tts_model_id: str = DEFAULT_TTS_MODEL_ID
    stt_model_id: str = DEFAULT_STT_MODEL_ID

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    def __post_init__(self) -> None:
        if self.output_channel_capacity <= 0:
            raise ValueError("output_channel_capacity must be > 0")
        if self.error_channel_capacity <= 0:
            raise ValueError("error_channel_capacity must be > 0")
        if self.open_timeout_s <= 0:
            raise ValueError("open_timeout_s must be > 0")

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable cannot be parsed or is out of range.
        """
        return AppConfig(
            api_key=os.environ.get(API_KEY_ENV_VAR) or None,
            base_url=os.environ.get("ELEVENLABS_BASE_URL", DEFAULT_BASE_URL),

            open_timeout_s=float(os.environ.get("WS_OPEN_TIMEOUT_S", WS_OPEN_TIMEOUT_S)),
            max_message_bytes=int(os.environ.get("WS_MAX_MESSAGE_BYTES", WS_MAX_MESSAGE_BYTES)),

            output_channel_capacity=int(
                os.environ.get("WS_OUTPUT_CHANNEL_CAPACITY", OUTPUT_CHANNEL_CAPACITY)
            ),
            error_channel_capacity=int(
                os.environ.get("WS_ERROR_CHANNEL_CAPACITY", ERROR_CHANNEL_CAPACITY)
            ),

            tts_model_id=os.environ.get("ELEVENLABS_TTS_MODEL_ID", DEFAULT_TTS_MODEL_ID),
            stt_model_id=os.environ.get("ELEVENLABS_STT_MODEL_ID", DEFAULT_STT_MODEL_ID),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
