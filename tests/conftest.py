"""
Shared fixtures: a fake backend over httpx.MockTransport, a controllable
clock and a retry service that never sleeps.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from infrastructure.external.backend_client import BackendClient
from infrastructure.resilience.retry_service import CircuitBreaker, RetryService


class FakeClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingTransport:
    """
    Routes requests to per-endpoint handlers and records every call.
    A route value is either a (status, body) tuple or a callable taking the
    request and returning one; raising an httpx error simulates the network.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[httpx.Request] = []

    def route(self, method: str, path: str, response: Any):
        self.routes[(method, path)] = response

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "Not found"})
        result = handler(request) if callable(handler) else handler
        status, body = result
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body or b"")


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)


def make_backend(transport: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
    http_client = httpx.Client(transport=httpx.MockTransport(transport))
    return BackendClient(
        "http://backend.test/api",
        timeout=5.0,
        http_client=http_client,
        circuit_breaker=CircuitBreaker(failure_threshold=50, name="test")
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def backend(transport) -> BackendClient:
    client = make_backend(transport)
    yield client
    client.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def retry_service() -> RetryService:
    return RetryService(sleep=lambda seconds: None)


def chat_reply(
    reply: str = "I hear you.",
    conversation_id: Optional[Any] = "c42",
    emotion: Optional[str] = None,
    confidence: Optional[float] = None,
    needs_escalation: bool = False
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "reply": reply,
        "conversation_id": conversation_id,
        "needs_escalation": needs_escalation
    }
    if emotion is not None:
        body["emotion"] = emotion
        body["confidence"] = confidence
    return body
