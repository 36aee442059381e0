"""Configuration file for pytest containing fixtures and configuration.

This module provides fixtures that can be used across multiple test files:
- fake_transport: an in-memory ``Transport`` that records every request
- fast_config: an ``InferableConfig`` with short intervals for loop tests
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from inferable.kernel.config import InferableConfig
from inferable.kernel.ports.transport import TransportResponse


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: Any = None


class FakeTransport:
    """Transport that returns scripted responses per ``(method, path)``.

    Each route holds a queue of ``TransportResponse`` objects or exceptions.
    Items are consumed in order; the last one is repeated forever. Unrouted
    requests get an empty 200 response.
    """

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self.routes: dict[tuple[str, str], list[TransportResponse | Exception]] = {}
        self.closed = False

    def add(self, method: str, path: str, *responses: TransportResponse | Exception) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def add_json(
        self, method: str, path: str, body: Any, headers: dict[str, str] | None = None
    ) -> None:
        self.add(method, path, TransportResponse(200, headers or {}, body))

    def requests_to(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    async def arequest(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> TransportResponse:
        self.requests.append(RecordedRequest(method, path, dict(headers or {}), params, json))
        queue = self.routes.get((method, path))
        if not queue:
            return TransportResponse(200, {}, None)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Fresh fake transport per test."""
    return FakeTransport()


@pytest.fixture
def fast_config() -> InferableConfig:
    """Configuration with sub-second intervals and a small failure limit."""
    return InferableConfig(
        api_endpoint="https://api.test.inferable.ai",
        api_secret="sk-test",
        machine_id="py-testmach",
        heartbeat_interval=0.05,
        default_retry_after=0.0,
        max_consecutive_poll_failures=3,
    )
