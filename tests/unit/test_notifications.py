"""Event delivery to the notification collaborator."""

import json

import httpx
import pytest

from src.config import EventType
from src.shared.domain import DomainEvent
from src.shared.infrastructure.notifications import (
    CircuitBreaker,
    CircuitState,
    LoggingEventPublisher,
    WebhookEventPublisher,
)
from tests.conftest import T0

URL = "http://notifications.test/events"


def _event() -> DomainEvent:
    return DomainEvent(
        type=EventType.TICKET_CREATED,
        ticket_id="t-1",
        actor_id="u-requester",
        timestamp=T0,
        payload={"ticket_number": "TKT-2026-000001"},
    )


def _publisher(handler, max_retries=3) -> WebhookEventPublisher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookEventPublisher(URL, max_retries=max_retries, http_client=client, backoff_base=0)


class TestWebhookPublisher:
    async def test_delivers_event_body(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        publisher = _publisher(handler)

        assert await publisher.deliver(_event()) is True
        assert received == [{
            "type": "TICKET_CREATED",
            "ticket_id": "t-1",
            "actor_id": "u-requester",
            "timestamp": T0.isoformat(),
            "payload": {"ticket_number": "TKT-2026-000001"},
        }]
        await publisher.close()

    async def test_retries_until_success(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503 if len(calls) < 3 else 200)

        publisher = _publisher(handler)

        assert await publisher.deliver(_event()) is True
        assert len(calls) == 3
        await publisher.close()

    async def test_transport_error_gives_up_after_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        publisher = _publisher(handler, max_retries=2)

        assert await publisher.deliver(_event()) is False
        assert len(calls) == 2
        await publisher.close()

    async def test_publish_returns_before_delivery_and_close_drains(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200)

        publisher = _publisher(handler)

        await publisher.publish(_event())
        await publisher.close()

        assert len(received) == 1

    async def test_open_circuit_drops_events(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        publisher = _publisher(handler, max_retries=1)
        for _ in range(5):
            await publisher.deliver(_event())

        assert await publisher.deliver(_event()) is False
        assert len(calls) == 5
        await publisher.close()


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)

        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    def test_half_open_after_recovery_timeout(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        breaker.record_failure()

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request()

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        breaker.record_failure()
        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED


async def test_logging_publisher_never_raises():
    publisher = LoggingEventPublisher()
    await publisher.publish(_event())
    await publisher.close()
