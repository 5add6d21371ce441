"""
WebSocket streaming TTS (text in, audio out over one socket).

Connect sequence:
1. validate voice id and options (no I/O)
2. open the socket on /v1/text-to-speech/{voice_id}/stream-input
3. send the initial frame ({"text": " ", voice_settings?, ...})
4. start the dispatcher and hand the connection to the caller

Outputs:
- audio():      raw audio bytes (already base64-decoded)
- alignments(): AlignmentFrame (normalized alignment preferred);
                dropped when full, so reading it is optional
- errors():     FrameDecodeError / ServerError / TransportReadError

close() sends {"close_connection": true} before closing the socket.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import AsyncIterable, Awaitable, Callable, Iterable

from adapters.tts.base import TTSConnection
from config import AppConfig
from protocol.codec import decode_tts_message, encode_tts_init, encode_tts_unit
from protocol.frames import AlignmentFrame, ControlKind, ControlSignal, FrameKind, TextChunk
from protocol.options import TTSOptions, default_tts_options
from streaming.bridge import BridgeHandle, StreamBridge
from streaming.channels import Channel
from streaming.connection import DuplexConnection, new_connection_id, send_init_frame
from streaming.errors import ValidationError
from transport.base import Transport
from transport.websocket import build_tts_url, open_websocket_transport, redact_url


Opener = Callable[..., Awaitable[Transport]]


class WebSocketTTSConnection(DuplexConnection, TTSConnection):
    """
    One open synthesis socket.

    Usage:
        async with await client.websocket_tts.connect(voice_id) as conn:
            await conn.send_text("Hello, ")
            await conn.send_text("world!")
            await conn.flush()
            async for pcm in conn.audio():
                sink.write(pcm)
    """

    def __init__(
        self,
        transport: Transport,
        *,
        voice_id: str,
        options: TTSOptions,
        config: AppConfig,
        connection_id: str | None = None,
    ) -> None:
        self.voice_id = voice_id
        self.options = options

        self._audio: Channel[bytes] = Channel(
            capacity=config.output_channel_capacity, name="audio"
        )
        self._alignments: Channel[AlignmentFrame] = Channel(
            capacity=config.output_channel_capacity, name="alignments"
        )

        super().__init__(
            transport,
            encode=encode_tts_unit,
            decode=decode_tts_message,
            routes={
                FrameKind.AUDIO: self._audio,
                FrameKind.ALIGNMENT: self._alignments,
            },
            final_unit=ControlSignal(ControlKind.CLOSE),
            config=config,
            connection_id=connection_id,
            lossy={FrameKind.ALIGNMENT},
        )

    # -------------------------
    # Writes
    # -------------------------

    async def send_text(self, text: str) -> None:
        await self._send(TextChunk(text=text))

    async def send_text_with_context(self, text: str, context_id: str) -> None:
        await self._send(TextChunk(text=text, context_id=context_id))

    async def trigger_generation(self) -> None:
        await self._send(ControlSignal(ControlKind.TRIGGER_GENERATION))

    async def flush(self) -> None:
        await self._send(ControlSignal(ControlKind.FLUSH))

    # -------------------------
    # Outputs
    # -------------------------

    def audio(self) -> Channel[bytes]:
        return self._audio

    def alignments(self) -> Channel[AlignmentFrame]:
        return self._alignments

    def stream_text(
        self,
        chunks: AsyncIterable[str] | Iterable[str],
        *,
        cancel: asyncio.Event | None = None,
    ) -> BridgeHandle[bytes]:
        bridge: StreamBridge[bytes] = StreamBridge(
            source=self._audio,
            errors=self._errors,
            send_chunk=self.send_text,
            end_input=self.flush,
            capacity=self._config.output_channel_capacity,
            connection_id=self.connection_id,
            name="tts",
        )
        return bridge.start(chunks, cancel=cancel)


class WebSocketTTSService:
    """
    Factory for synthesis connections.

    Reached through VoiceStreamingClient.websocket_tts.
    """

    def __init__(
        self,
        *,
        api_key: str,
        config: AppConfig,
        opener: Opener = open_websocket_transport,
    ) -> None:
        self._api_key = api_key
        self._config = config
        self._open = opener

    async def connect(
        self,
        voice_id: str,
        options: TTSOptions | None = None,
    ) -> WebSocketTTSConnection:
        """
        Open a synthesis socket for voice_id.

        Raises:
            ValidationError if voice_id is empty or options are out of range
            ConnectError if the socket or the initial frame fails
        """
        if not voice_id:
            raise ValidationError("voice_id", "voice ID is required")

        if options is None:
            options = dataclasses.replace(
                default_tts_options(), model_id=self._config.tts_model_id
            )
        options.validate()

        url = build_tts_url(self._config.base_url, voice_id, options)
        connection_id = new_connection_id()

        transport = await self._open(
            url,
            self._api_key,
            connection_id=connection_id,
            open_timeout_s=self._config.open_timeout_s,
            max_message_bytes=self._config.max_message_bytes,
        )
        await send_init_frame(
            transport,
            encode_tts_init(options),
            url=redact_url(url),
            connection_id=connection_id,
        )

        conn = WebSocketTTSConnection(
            transport,
            voice_id=voice_id,
            options=options,
            config=self._config,
            connection_id=connection_id,
        )
        conn.start()
        return conn
