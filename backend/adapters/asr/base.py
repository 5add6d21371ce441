"""
Streaming ASR connection contract.

This module defines the *interface only*: no sockets, no codecs, no
channel wiring live here.

Key invariants:
- Audio is sent in caller-chosen chunks in the format announced in the
  initial config frame (sample rate, encoding).
- end_stream() ends the input: later audio writes raise ClosedConnectionError.
- transcripts() yields partial and final TranscriptFrame objects in
  server order.
- Every output channel closes when the connection closes, for any reason.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterable, Iterable

from protocol.frames import TranscriptFrame
from streaming.bridge import BridgeHandle
from streaming.channels import Channel, ErrorChannel


class ASRConnection(ABC):
    """
    Abstract interface for one open streaming ASR connection.

    Implementations are responsible for:
    - Serializing writes so audio reaches the wire in call order
    - Routing decoded transcripts to the transcript channel
    - Closing every channel exactly once

    Non-responsibilities:
    - No endpointing or VAD (the server finalizes on end_stream())
    - No resampling (callers send audio in the announced format)
    - No reconnection
    """

    @abstractmethod
    async def send_audio(self, audio: bytes) -> None:
        """
        Send one audio chunk. Empty audio is a no-op.

        Raises:
            ClosedConnectionError after close() or end_stream()
        """
        raise NotImplementedError

    @abstractmethod
    async def end_stream(self) -> None:
        """
        Mark end of input; the server finalizes pending transcripts.
        """
        raise NotImplementedError

    @abstractmethod
    def transcripts(self) -> Channel[TranscriptFrame]:
        raise NotImplementedError

    @abstractmethod
    def errors(self) -> ErrorChannel:
        raise NotImplementedError

    @abstractmethod
    def stream_audio(
        self,
        chunks: AsyncIterable[bytes] | Iterable[bytes],
        *,
        cancel: asyncio.Event | None = None,
    ) -> BridgeHandle[TranscriptFrame]:
        """
        Send every chunk, end the stream when input is exhausted and expose
        the resulting transcripts on handle.output.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Close the connection.

        Contract:
        - close() MUST be idempotent and safe to call concurrently.
        - After close() returns, every output channel is closed.
        """
        raise NotImplementedError
