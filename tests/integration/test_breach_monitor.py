"""Periodic SLA breach sweep."""

from datetime import timedelta

import pytest

from src.config import EventType, ServiceLevel, TicketCategory, TicketStatus
from src.sla.application import BreachMonitor
from src.tickets.application.dto import TicketCreateRequest
from src.tickets.infrastructure.repositories import SQLAlchemyTicketRepository
from tests.conftest import T0, RecordingEventPublisher


def _request(service_level: ServiceLevel) -> TicketCreateRequest:
    return TicketCreateRequest(
        title="Printer on 3rd floor offline",
        description="Nobody on the floor can print.",
        category=TicketCategory.HARDWARE,
        service_level=service_level,
    )


@pytest.fixture
def sweep_publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def monitor(session, sweep_publisher, clock) -> BreachMonitor:
    return BreachMonitor(
        SQLAlchemyTicketRepository(session),
        sweep_publisher,
        interval_seconds=300,
        clock=clock,
    )


class TestBreachSweep:
    async def test_first_sweep_looks_back_one_interval(self, ticket_service, requester, monitor, sweep_publisher):
        critical = await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
        await ticket_service.create_ticket(_request(ServiceLevel.STANDARD), requester)

        breached = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))

        assert [t.id for t in breached] == [critical.id]
        events = sweep_publisher.of_type(EventType.SLA_BREACHED)
        assert len(events) == 1
        assert events[0].ticket_id == critical.id
        assert events[0].actor_id is None
        assert events[0].payload["ticket_number"] == critical.ticket_number
        assert events[0].payload["service_level"] == "CRITICAL_SUPPORT"
        assert events[0].payload["requester_id"] == requester.id

    async def test_breach_older_than_the_window_is_not_reported(self, ticket_service, requester, monitor, sweep_publisher):
        await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)

        breached = await monitor.sweep(now=T0 + timedelta(hours=5))

        assert breached == []
        assert sweep_publisher.events == []

    async def test_second_sweep_does_not_repeat_events(self, ticket_service, requester, monitor, sweep_publisher):
        await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)

        await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))
        again = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=6))

        assert again == []
        assert len(sweep_publisher.of_type(EventType.SLA_BREACHED)) == 1
        assert monitor.last_sweep == T0 + timedelta(hours=4, minutes=6)

    async def test_window_spans_since_previous_sweep(self, ticket_service, requester, monitor, sweep_publisher):
        critical = await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
        standard = await ticket_service.create_ticket(_request(ServiceLevel.STANDARD), requester)

        await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))
        # A long gap between sweeps still covers everything that fell due in it
        later = await monitor.sweep(now=T0 + timedelta(hours=41))

        assert [t.id for t in later] == [standard.id]
        assert [e.ticket_id for e in sweep_publisher.events] == [critical.id, standard.id]

    @pytest.mark.parametrize("count", [3, 4])
    async def test_sweep_pages_past_batch_size(self, ticket_service, requester, session, sweep_publisher, clock, count):
        created = [
            await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
            for _ in range(count)
        ]
        monitor = BreachMonitor(
            SQLAlchemyTicketRepository(session),
            sweep_publisher,
            interval_seconds=300,
            clock=clock,
            batch_size=2,
        )

        breached = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))
        again = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=2))

        assert sorted(t.id for t in breached) == sorted(t.id for t in created)
        assert again == []
        assert sorted(e.ticket_id for e in sweep_publisher.of_type(EventType.SLA_BREACHED)) == sorted(
            t.id for t in created
        )

    async def test_resolved_tickets_never_breach(self, ticket_service, requester, agent, monitor, sweep_publisher):
        ticket = await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
        await ticket_service.change_status(ticket.id, TicketStatus.RESOLVED, agent, "Replaced toner")

        breached = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))

        assert breached == []
        assert sweep_publisher.events == []

    async def test_sweep_uses_clock_when_no_time_given(self, ticket_service, requester, monitor, clock):
        await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
        clock.advance(hours=4, minutes=2)

        breached = await monitor.sweep()

        assert len(breached) == 1
        assert monitor.last_sweep == clock.now

    async def test_swapped_repository_keeps_window(self, ticket_service, requester, monitor, session, sweep_publisher):
        await ticket_service.create_ticket(_request(ServiceLevel.CRITICAL_SUPPORT), requester)
        await monitor.sweep(now=T0 + timedelta(hours=4, minutes=1))

        monitor.use_repository(SQLAlchemyTicketRepository(session))
        again = await monitor.sweep(now=T0 + timedelta(hours=4, minutes=2))

        assert again == []
        assert len(sweep_publisher.events) == 1
