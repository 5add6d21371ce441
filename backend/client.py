"""
Client facade.

Entry point for callers:

    client = VoiceStreamingClient()                 # key from ELEVENLABS_API_KEY
    tts = await client.websocket_tts.connect("voice-id")
    stt = await client.websocket_stt.connect()

Responsibilities:
- Resolve the API key (argument > config > environment)
- Apply logging configuration
- Hand the resolved config to the connection services
"""

from __future__ import annotations

import dataclasses

from adapters.asr.websocket_stt import Opener, WebSocketSTTService
from adapters.tts.websocket_tts import WebSocketTTSService
from config import AppConfig
from observability.logger import configure_logging
from streaming.errors import MissingAPIKeyError
from transport.websocket import open_websocket_transport


class VoiceStreamingClient:
    """
    Holds credentials and configuration; exposes the streaming services.

    Raises:
        MissingAPIKeyError if no API key is available from any source
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        config: AppConfig | None = None,
        *,
        opener: Opener = open_websocket_transport,
    ) -> None:
        if config is None:
            config = AppConfig.load_from_env()

        overrides: dict[str, str] = {}
        if api_key:
            overrides["api_key"] = api_key
        if base_url:
            overrides["base_url"] = base_url
        if overrides:
            config = dataclasses.replace(config, **overrides)

        if not config.api_key:
            raise MissingAPIKeyError()

        configure_logging(enabled=config.enable_json_logs)

        self.config = config
        self.websocket_tts = WebSocketTTSService(
            api_key=config.api_key, config=config, opener=opener
        )
        self.websocket_stt = WebSocketSTTService(
            api_key=config.api_key, config=config, opener=opener
        )
