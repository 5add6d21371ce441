"""
WebSocket realtime STT (audio in, transcripts out over one socket).

Connect sequence:
1. validate options (no I/O)
2. open the socket on /v1/speech-to-text/realtime?model_id=...
3. send the "config" frame (sample rate, encoding, partials, word timestamps)
4. start the dispatcher and hand the connection to the caller

Outputs:
- transcripts(): partial and final TranscriptFrame
- errors():      FrameDecodeError / ServerError / TransportReadError

Audio is base64-encoded by the codec. close() sends
{"type": "end_of_stream"} before closing the socket.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import AsyncIterable, Awaitable, Callable, Iterable

from adapters.asr.base import ASRConnection
from config import AppConfig
from protocol.codec import decode_stt_message, encode_stt_init, encode_stt_unit
from protocol.frames import AudioChunk, ControlKind, ControlSignal, FrameKind, TranscriptFrame
from protocol.options import STTOptions, default_stt_options
from streaming.bridge import BridgeHandle, StreamBridge
from streaming.channels import Channel
from streaming.connection import DuplexConnection, new_connection_id, send_init_frame
from transport.base import Transport
from transport.websocket import build_stt_url, open_websocket_transport, redact_url


Opener = Callable[..., Awaitable[Transport]]


class WebSocketSTTConnection(DuplexConnection, ASRConnection):
    """
    One open transcription socket.

    Usage:
        conn = await client.websocket_stt.connect()
        handle = conn.stream_audio(iter_reader_chunks(reader, 3200))
        async for t in handle.output:
            if t.is_final:
                print(t.text)
        await conn.close()
    """

    def __init__(
        self,
        transport: Transport,
        *,
        options: STTOptions,
        config: AppConfig,
        connection_id: str | None = None,
    ) -> None:
        self.options = options

        self._transcripts: Channel[TranscriptFrame] = Channel(
            capacity=config.output_channel_capacity, name="transcripts"
        )

        super().__init__(
            transport,
            encode=encode_stt_unit,
            decode=decode_stt_message,
            routes={FrameKind.TRANSCRIPT: self._transcripts},
            final_unit=ControlSignal(ControlKind.END_OF_INPUT),
            config=config,
            connection_id=connection_id,
        )

    async def send_audio(self, audio: bytes) -> None:
        await self._send(AudioChunk(audio=bytes(audio)))

    async def end_stream(self) -> None:
        await self._send(ControlSignal(ControlKind.END_OF_INPUT))

    def transcripts(self) -> Channel[TranscriptFrame]:
        return self._transcripts

    def stream_audio(
        self,
        chunks: AsyncIterable[bytes] | Iterable[bytes],
        *,
        cancel: asyncio.Event | None = None,
    ) -> BridgeHandle[TranscriptFrame]:
        bridge: StreamBridge[TranscriptFrame] = StreamBridge(
            source=self._transcripts,
            errors=self._errors,
            send_chunk=self.send_audio,
            end_input=self.end_stream,
            capacity=self._config.output_channel_capacity,
            connection_id=self.connection_id,
            name="stt",
        )
        return bridge.start(chunks, cancel=cancel)


class WebSocketSTTService:
    """
    Factory for transcription connections.

    Reached through VoiceStreamingClient.websocket_stt.
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

    async def connect(self, options: STTOptions | None = None) -> WebSocketSTTConnection:
        """
        Open a realtime transcription socket.

        Raises:
            ValidationError if options are out of range
            ConnectError if the socket or the config frame fails
        """
        if options is None:
            options = dataclasses.replace(
                default_stt_options(), model_id=self._config.stt_model_id
            )
        options.validate()

        url = build_stt_url(self._config.base_url, options)
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
            encode_stt_init(options),
            url=redact_url(url),
            connection_id=connection_id,
        )

        conn = WebSocketSTTConnection(
            transport,
            options=options,
            config=self._config,
            connection_id=connection_id,
        )
        conn.start()
        return conn
