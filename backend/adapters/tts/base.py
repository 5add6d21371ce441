"""
Streaming TTS connection contract.

This module defines the *interface only*: no sockets, no codecs, no
channel wiring live here.

Key invariants:
- Text is sent incrementally; the server decides when to generate unless
  trigger_generation() or flush() is called.
- flush() ends the input: later text writes raise ClosedConnectionError.
- audio() yields raw audio bytes in the connection's output format, in
  server order; alignments() yields AlignmentFrame objects.
- Every output channel closes when the connection closes, for any reason.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterable, Iterable

from protocol.frames import AlignmentFrame
from streaming.bridge import BridgeHandle
from streaming.channels import Channel, ErrorChannel


class TTSConnection(ABC):
    """
    Abstract interface for one open streaming TTS connection.

    Implementations are responsible for:
    - Serializing writes so one caller's units reach the wire in call order
    - Routing decoded audio and alignment to their channels
    - Closing every channel exactly once

    Non-responsibilities:
    - No text chunking policy (callers decide chunk boundaries)
    - No reconnection
    - No audio decoding or resampling
    """

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """
        Send one text chunk. Empty text is a no-op.

        Raises:
            ClosedConnectionError after close() or flush()
        """
        raise NotImplementedError

    @abstractmethod
    async def send_text_with_context(self, text: str, context_id: str) -> None:
        """Send one text chunk bound to a server-side context id."""
        raise NotImplementedError

    @abstractmethod
    async def trigger_generation(self) -> None:
        """Ask the server to generate audio for buffered text now."""
        raise NotImplementedError

    @abstractmethod
    async def flush(self) -> None:
        """
        Mark end of input; the server finalizes and returns remaining audio.
        """
        raise NotImplementedError

    @abstractmethod
    def audio(self) -> Channel[bytes]:
        raise NotImplementedError

    @abstractmethod
    def alignments(self) -> Channel[AlignmentFrame]:
        raise NotImplementedError

    @abstractmethod
    def errors(self) -> ErrorChannel:
        raise NotImplementedError

    @abstractmethod
    def stream_text(
        self,
        chunks: AsyncIterable[str] | Iterable[str],
        *,
        cancel: asyncio.Event | None = None,
    ) -> BridgeHandle[bytes]:
        """
        Send every chunk, flush when input is exhausted and expose the
        resulting audio on handle.output.
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
