# pylint: disable=missing-module-docstring,missing-function-docstring

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from config import AppConfig
from observability import logger
from transport.base import TransportClosed


class FakeTransport:
    """
    In-memory Transport.

    - send() appends to .sent (raises TransportClosed once closed, or
      whatever .fail_send is set to)
    - recv() pops from an inbound queue fed by push()/push_json()
    - push_close(code) makes the next recv() raise TransportClosed
    - close() is idempotent and unblocks a pending recv() with a 1000 close
    """

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_calls = 0
        self.closed = False
        self.fail_send: Exception | None = None
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    # Transport contract

    async def send(self, message: str) -> None:
        if self.fail_send is not None:
            raise self.fail_send
        if self.closed:
            raise TransportClosed(1000, "closed")
        self.sent.append(message)

    async def recv(self) -> str | bytes:
        item = await self._inbound.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        self._inbound.put_nowait(TransportClosed(1000, ""))

    # Test helpers

    def push(self, raw: str | bytes) -> None:
        self._inbound.put_nowait(raw)

    def push_json(self, message: dict[str, Any]) -> None:
        self.push(json.dumps(message))

    def push_close(self, code: int | None = 1000, reason: str = "") -> None:
        self._inbound.put_nowait(TransportClosed(code, reason))

    def push_error(self, exc: BaseException) -> None:
        self._inbound.put_nowait(exc)

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.sent]


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(api_key="test-key", base_url="https://api.example.test")


@pytest.fixture
def captured_events(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Capture every JSONL event as a decoded dict."""
    events: list[dict[str, Any]] = []

    def fake_print(line: str) -> None:
        events.append(json.loads(line))

    monkeypatch.setattr(logger, "_print", fake_print)
    monkeypatch.setattr(logger, "_enabled", True)
    return events


@pytest.fixture
def fake_opener(fake_transport: FakeTransport):
    """Opener double for the connection services; records its calls."""
    calls: list[dict[str, Any]] = []

    async def opener(url: str, api_key: str, **kwargs: Any) -> FakeTransport:
        calls.append({"url": url, "api_key": api_key, **kwargs})
        return fake_transport

    opener.calls = calls  # type: ignore[attr-defined]
    return opener
