"""
Transport contract.

This module defines the *interface only*: one physical socket that can
send text frames, receive frames and close. Handshake, URLs and auth
live in transport.websocket; framing lives in protocol.codec.

Key invariants:
- recv() raises TransportClosed when the peer (or we) closed the socket.
  TransportClosed.normal distinguishes expected closure codes (1000/1001)
  from abnormal ones.
- Any other exception from recv() is a socket-level failure.
- close() is safe to call more than once.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from constants import WS_NORMAL_CLOSE_CODES


class TransportClosed(Exception):
    """
    Raised by recv()/send() once the socket is closed.

    code is None when no close frame was received (connection dropped).
    """

    def __init__(self, code: int | None = None, reason: str = "") -> None:
        super().__init__(f"transport closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason

    @property
    def normal(self) -> bool:
        """True for expected closure codes (normal closure / going away)."""
        return self.code in WS_NORMAL_CLOSE_CODES


@runtime_checkable
class Transport(Protocol):
    """One open, bidirectional socket."""

    async def send(self, message: str) -> None:
        """Write exactly one text frame."""
        ...

    async def recv(self) -> str | bytes:
        """Wait for and return the next frame."""
        ...

    async def close(self) -> None:
        """Close the socket; idempotent."""
        ...
