"""
Domain Event Delivery
=====================

Publishers that hand committed domain events to the notification
collaborator (email / WebSocket fan-out lives on the other side).

- LoggingEventPublisher: structured log line per event (default)
- WebhookEventPublisher: HTTP POST with retry and a circuit breaker

Delivery is fire-and-forget: ``publish`` schedules a background task and
returns immediately, so a slow or failing receiver never touches the
committed ticket change.
"""

import asyncio
import time
from typing import Optional, Set

import httpx

from src.config import settings
from src.shared.domain.events import DomainEvent, IEventPublisher
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class LoggingEventPublisher(IEventPublisher):
    """Writes each event to the structured log."""

    async def publish(self, event: DomainEvent) -> None:
        logger.info(
            "Domain event",
            extra={
                "event_type": event.type.value,
                "ticket_id": event.ticket_id,
                "actor_id": event.actor_id,
                "payload": event.payload,
            }
        )


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        """Check if request should be allowed."""
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        """Record successful request."""
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        """Record failed request."""
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class WebhookEventPublisher(IEventPublisher):
    """
    Webhook client with circuit breaker and retry logic.

    Handles sending domain events with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff_base: float = 1.0,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client
        self._tasks: Set[asyncio.Task] = set()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._http_client

    async def publish(self, event: DomainEvent) -> None:
        """Schedule delivery in the background and return immediately."""
        task = asyncio.create_task(self.deliver(event))
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def deliver(self, event: DomainEvent) -> bool:
        """
        POST an event to the webhook.

        Returns:
            True if delivered, False otherwise
        """
        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, dropping event",
                extra={"event_type": event.type.value, "ticket_id": event.ticket_id}
            )
            return False

        body = event.to_dict()

        for attempt in range(self.max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self.url, json=body)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Event delivered",
                        extra={
                            "event_type": event.type.value,
                            "ticket_id": event.ticket_id
                        }
                    )
                    return True

                logger.warning(
                    "Webhook returned non-2xx",
                    extra={
                        "status_code": response.status_code,
                        "attempt": attempt + 1
                    }
                )

            except httpx.HTTPError as e:
                logger.error(
                    "Event delivery failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "ticket_id": event.ticket_id
                    }
                )

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.backoff_base * (2 ** attempt))

        self._circuit_breaker.record_failure()
        return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Finish pending deliveries and close HTTP client."""
        await self.drain()
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


_publisher: IEventPublisher = LoggingEventPublisher()


def build_event_publisher() -> IEventPublisher:
    """Webhook delivery when a URL is configured, logging otherwise."""
    if settings.notification_webhook_url:
        return WebhookEventPublisher(
            settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        )
    return LoggingEventPublisher()


def set_event_publisher(publisher: IEventPublisher) -> None:
    global _publisher
    _publisher = publisher


def get_event_publisher() -> IEventPublisher:
    """FastAPI dependency returning the process-wide publisher."""
    return _publisher
