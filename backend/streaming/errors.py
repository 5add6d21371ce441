"""
Exception hierarchy for the duplex streaming client.

Surfacing rules:
- ConnectError / ValidationError are raised synchronously from connect().
- ClosedConnectionError is raised synchronously from writer calls.
- FrameDecodeError, ServerError and TransportReadError are never raised
  into caller code; the dispatcher delivers them on the error channel.
- StreamCancelledError is the stream bridge's result after cancellation.
"""

from __future__ import annotations


class StreamingError(Exception):
    """Base class for all streaming client errors."""


# -------------------------
# Synchronous (caller-facing)
# -------------------------

class ValidationError(StreamingError):
    """
    Raised when options or arguments are invalid.

    Nothing has touched the network when this is raised.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"validation error for {field}: {message}")
        self.field = field
        self.message = message


class MissingAPIKeyError(ValidationError):
    """Raised when no API key is configured or provided."""

    def __init__(self) -> None:
        super().__init__("api_key", "API key is required")


class ConnectError(StreamingError):
    """
    Raised when the socket could not be opened or initialized.

    Covers DNS/TCP/TLS failures, handshake rejection (including auth
    failures) and a failed initial configuration frame. No connection
    object exists when this is raised.
    """

    def __init__(self, url: str, reason: str, *, status_code: int | None = None) -> None:
        super().__init__(f"websocket connect to {url} failed: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ClosedConnectionError(StreamingError):
    """
    Raised on a write after close(), or a chunk write after end of input.

    The unit never reaches the wire.
    """

    def __init__(self, message: str = "connection closed") -> None:
        super().__init__(message)


class StreamCancelledError(StreamingError):
    """Reported by the stream bridge when it was cancelled mid-stream."""

    def __init__(self) -> None:
        super().__init__("stream cancelled")


# -------------------------
# Asynchronous (error channel)
# -------------------------

class FrameDecodeError(StreamingError):
    """
    An inbound frame could not be decoded.

    Non-fatal: the dispatcher keeps reading subsequent frames.
    """

    def __init__(self, reason: str, *, raw: str | bytes | None = None) -> None:
        super().__init__(f"failed to parse response: {reason}")
        self.reason = reason
        self.raw = raw


class ServerError(StreamingError):
    """
    The server reported an error in an otherwise well-formed frame.

    Non-fatal: does not by itself close the connection.
    """

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(f"server error: {message}")
        self.message = message
        self.code = code


class TransportReadError(StreamingError):
    """
    The socket failed with something other than a normal closure.

    Fatal: reported once, then every output channel closes.
    """

    def __init__(self, reason: str, *, close_code: int | None = None) -> None:
        super().__init__(f"websocket read failed: {reason}")
        self.reason = reason
        self.close_code = close_code
