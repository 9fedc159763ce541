"""
SLA Application Services
========================

Application services for the SLA policy:

- SLAPolicyService answers questions about the active targets and the
  impact/urgency suggestion matrix.
- BreachMonitor is the periodic sweep that publishes one SLA_BREACHED
  event for every ticket whose due date passed since the previous sweep.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from src.config import EventType, Impact, Priority, ServiceLevel, Urgency
from src.shared.domain import IEventPublisher
from src.shared.infrastructure.logging import get_logger
from src.sla.domain import SLACalculator, SLAConfig, SLATarget
from src.tickets.application.services import EventEmitter, ITicketRepository, utcnow
from src.tickets.domain import Ticket

logger = get_logger(__name__)


class SLAPolicyService:
    """Read-only view of the active SLA configuration."""

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config = config

    def targets(self) -> Dict[ServiceLevel, SLATarget]:
        return {
            level: SLACalculator.resolve_sla_targets(level, self._config)
            for level in ServiceLevel
        }

    def target_for(self, service_level: ServiceLevel) -> SLATarget:
        return SLACalculator.resolve_sla_targets(service_level, self._config)

    def suggest(self, impact: Impact, urgency: Urgency) -> Dict[str, object]:
        """
        Advisory classification for an impact/urgency pair.

        Nothing is applied to a ticket; callers decide whether to use it.
        """
        priority: Priority = SLACalculator.derive_priority(impact, urgency)
        service_level = SLACalculator.derive_service_level(priority, impact)
        return {
            "impact": Impact(impact),
            "urgency": Urgency(urgency),
            "priority": priority,
            "service_level": service_level,
            "target": self.target_for(service_level),
        }


class BreachMonitor:
    """
    Publishes SLA_BREACHED events for tickets that fell past due.

    Each sweep covers the window between the previous sweep and ``now``.
    The first sweep looks back one interval. Results are read in pages of
    ``batch_size`` until the window is exhausted.
    """

    def __init__(
        self,
        ticket_repository: Optional[ITicketRepository],
        publisher: IEventPublisher,
        interval_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
        batch_size: int = 500,
    ):
        self._tickets = ticket_repository
        self._events = EventEmitter(publisher)
        self._interval = timedelta(seconds=interval_seconds)
        self._clock = clock
        self._batch_size = batch_size
        self._last_sweep: Optional[datetime] = None

    @property
    def last_sweep(self) -> Optional[datetime]:
        return self._last_sweep

    def use_repository(self, ticket_repository: ITicketRepository) -> None:
        """Swap the repository, e.g. for a fresh session per sweep."""
        self._tickets = ticket_repository

    async def sweep(self, now: Optional[datetime] = None) -> List[Ticket]:
        """
        Run one sweep.

        Returns:
            Tickets an event was published for
        """
        now = now or self._clock()
        since = self._last_sweep or (now - self._interval)

        breached: List[Ticket] = []
        while True:
            batch = await self._tickets.find_breached(
                now, since=since, limit=self._batch_size, offset=len(breached)
            )
            breached.extend(batch)
            if len(batch) < self._batch_size:
                break

        for ticket in breached:
            await self._events.emit(
                EventType.SLA_BREACHED,
                ticket.id,
                None,
                now,
                {
                    "ticket_number": ticket.ticket_number,
                    "service_level": ticket.service_level.value,
                    "priority": ticket.priority.value,
                    "due_date": ticket.due_date.isoformat() if ticket.due_date else None,
                    "assigned_to_id": ticket.assigned_to_id,
                    "requester_id": ticket.requester_id,
                },
            )

        self._last_sweep = now
        if breached:
            logger.warning(
                "SLA breaches detected",
                extra={"count": len(breached), "since": since.isoformat(), "until": now.isoformat()}
            )
        else:
            logger.debug("SLA sweep found no new breaches", extra={"since": since.isoformat()})
        return breached
