"""
WebSocket transport session.

Responsibilities:
- Build the connection target (scheme swap, protocol path, query params)
- Perform the socket upgrade with the API-key header
- Adapt a websockets client connection to the Transport contract

Not responsible for:
- Frame encoding/decoding (protocol.codec)
- Write serialization or closed-state checks (streaming.writer)
- The initial configuration frame (sent by the connection services)
"""

from __future__ import annotations

import asyncio
import urllib.parse

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
)

from constants import (
    API_KEY_HEADER,
    STT_REALTIME_PATH,
    TTS_STREAM_INPUT_PATH,
    WS_CLOSE_NORMAL,
    WS_MAX_MESSAGE_BYTES,
    WS_OPEN_TIMEOUT_S,
)
from observability.logger import log_ws_event
from observability.metrics import timed
from protocol.options import STTOptions, TTSOptions
from streaming.errors import ConnectError
from transport.base import TransportClosed


# ------------------------------------------------------------------
# URL building
# ------------------------------------------------------------------

def _ws_base(base_url: str, path: str, params: dict[str, str]) -> str:
    parts = urllib.parse.urlsplit(base_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    query = urllib.parse.urlencode(params)
    return urllib.parse.urlunsplit((scheme, parts.netloc, path, query, ""))


def build_tts_url(base_url: str, voice_id: str, options: TTSOptions) -> str:
    """
    Build the synthesis stream-input URL.

    Only non-empty options are encoded; latency and inactivity timeout
    are omitted at 0, SSML parsing only appears when enabled.
    """
    params: dict[str, str] = {}
    if options.model_id:
        params["model_id"] = options.model_id
    if options.output_format:
        params["output_format"] = options.output_format
    if options.optimize_streaming_latency > 0:
        params["optimize_streaming_latency"] = str(options.optimize_streaming_latency)
    if options.enable_ssml_parsing:
        params["enable_ssml_parsing"] = "true"
    if options.language_code:
        params["language_code"] = options.language_code
    if options.inactivity_timeout_s > 0:
        params["inactivity_timeout"] = str(options.inactivity_timeout_s)

    path = TTS_STREAM_INPUT_PATH.format(voice_id=urllib.parse.quote(voice_id, safe=""))
    return _ws_base(base_url, path, params)


def build_stt_url(base_url: str, options: STTOptions) -> str:
    """
    Build the realtime transcription URL.

    Audio format travels in the initial config frame, not the URL.
    """
    params: dict[str, str] = {}
    if options.model_id:
        params["model_id"] = options.model_id
    return _ws_base(base_url, STT_REALTIME_PATH, params)


def redact_url(url: str) -> str:
    """Strip the query string for logging."""
    parts = urllib.parse.urlsplit(url)
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


# ------------------------------------------------------------------
# Transport adapter
# ------------------------------------------------------------------

class WebSocketTransport:
    """
    Transport backed by a websockets ClientConnection.

    Maps websockets' ConnectionClosed family onto TransportClosed so the
    dispatcher never imports websockets.
    """

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, message: str) -> None:
        try:
            await self._ws.send(message)
        except ConnectionClosed as e:
            raise _as_transport_closed(e) from e

    async def recv(self) -> str | bytes:
        try:
            return await self._ws.recv()
        except ConnectionClosed as e:
            raise _as_transport_closed(e) from e

    async def close(self) -> None:
        await self._ws.close(code=WS_CLOSE_NORMAL)


def _as_transport_closed(exc: ConnectionClosed) -> TransportClosed:
    # Prefer the peer's close frame; fall back to the one we sent.
    frame = exc.rcvd or exc.sent
    if frame is None:
        return TransportClosed(None, "connection lost")
    return TransportClosed(frame.code, frame.reason)


# ------------------------------------------------------------------
# Handshake
# ------------------------------------------------------------------

async def open_websocket_transport(
    url: str,
    api_key: str,
    *,
    connection_id: str | None = None,
    open_timeout_s: float = WS_OPEN_TIMEOUT_S,
    max_message_bytes: int = WS_MAX_MESSAGE_BYTES,
) -> WebSocketTransport:
    """
    Open the socket with the API-key header attached.

    Raises:
        ConnectError on DNS/TCP/TLS failures, timeouts, rejected
        handshakes (status_code set) and invalid URLs.
    """
    safe_url = redact_url(url)
    log_ws_event("WS_CONNECTING", connection_id=connection_id, url=safe_url)

    try:
        with timed("ws_handshake", connection_id=connection_id, details={"url": safe_url}):
            ws = await ws_connect(
                url,
                additional_headers={API_KEY_HEADER: api_key},
                open_timeout=open_timeout_s,
                max_size=max_message_bytes,
            )
    except InvalidStatus as e:
        status = e.response.status_code
        log_ws_event(
            "WS_CONNECT_FAILED",
            connection_id=connection_id,
            url=safe_url,
            status_code=status,
        )
        raise ConnectError(safe_url, f"handshake rejected with HTTP {status}", status_code=status) from e
    except (InvalidHandshake, InvalidURI, OSError, asyncio.TimeoutError) as e:
        log_ws_event(
            "WS_CONNECT_FAILED",
            connection_id=connection_id,
            url=safe_url,
            error=f"{type(e).__name__}: {e}",
        )
        raise ConnectError(safe_url, f"{type(e).__name__}: {e}") from e

    log_ws_event("WS_CONNECTED", connection_id=connection_id, url=safe_url)
    return WebSocketTransport(ws)
