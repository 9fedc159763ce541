"""
Ticket Application Services
===========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Every ticket mutation follows the same unit of work:

1. Load the ticket and check the actor may see it
2. ``apply_change`` computes the new ticket and its history entries
3. Save with an optimistic version check, append history, commit
4. Publish the domain event (after commit, fire-and-forget)

A failure anywhere in step 3 rolls back both halves.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from src.config import EventType, Role, TicketStatus, TERMINAL_STATUSES
from src.core import ForbiddenException, ResourceNotFoundException, ValidationException
from src.reports.domain.filters import TicketFilter
from src.shared.domain import Actor, DomainEvent, IEventPublisher, has_elevated_access
from src.shared.infrastructure.logging import get_logger
from src.sla.domain import SLACalculator, SLAConfig
from src.tickets.application.dto import TicketCreateRequest
from src.tickets.domain import (
    Assignment,
    DirectoryUser,
    FieldChange,
    HistoryEntry,
    Mutation,
    StatusChange,
    Ticket,
    apply_change,
    assert_can_access,
)

logger = get_logger(__name__)

# Changing these needs an elevated role
RESTRICTED_FIELDS = ("priority", "service_level")

MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ticket_number(year: int, sequence: int) -> str:
    return f"TKT-{year}-{sequence:06d}"


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by internal ID."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket."""

    @abstractmethod
    async def save(self, ticket: Ticket, expected_version: int) -> Ticket:
        """
        Persist a changed ticket if nobody changed it since it was read.

        Raises:
            ConflictException: If the stored version differs
        """

    @abstractmethod
    async def search(
        self,
        ticket_filter: TicketFilter,
        actor: Optional[Actor] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """Tickets matching a filter within the actor's listing scope, plus total."""

    @abstractmethod
    async def find_breached(
        self,
        now: datetime,
        since: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0
    ) -> List[Ticket]:
        """Open tickets whose due date passed (after ``since`` when given)."""


class IHistoryRepository(ABC):
    """Interface for the append-only ticket audit trail."""

    @abstractmethod
    async def append(self, entries: Sequence[HistoryEntry]) -> List[HistoryEntry]:
        """Append entries, assigning per-ticket sequence numbers."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[HistoryEntry]:
        """History of a ticket, newest first."""


class ITicketNumberSequence(ABC):
    """Durable per-year counter behind ticket numbers."""

    @abstractmethod
    async def next_value(self, year: int) -> int:
        """Atomically increment and return the counter for ``year``."""


class IUserDirectory(ABC):
    """Read model of the identity provider's users."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[DirectoryUser]:
        """Get user by id."""

    @abstractmethod
    async def get_many(self, user_ids: Sequence[str]) -> Dict[str, DirectoryUser]:
        """Users by id; unknown ids are absent from the result."""

    @abstractmethod
    async def list_team(self) -> List[DirectoryUser]:
        """Active support staff and managers."""

    @abstractmethod
    async def upsert(self, user: DirectoryUser) -> DirectoryUser:
        """Insert or replace a directory entry."""


class IUnitOfWork(ABC):
    """Transaction boundary around repository writes."""

    @abstractmethod
    async def commit(self) -> None:
        """Commit all pending writes."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard all pending writes."""


# ========== Application Services ==========

class EventEmitter:
    """Publishes events after commit; delivery problems never reach the caller."""

    def __init__(self, publisher: IEventPublisher):
        self._publisher = publisher

    async def emit(
        self,
        event_type: EventType,
        ticket_id: str,
        actor_id: Optional[str],
        timestamp: datetime,
        payload: Dict[str, Any],
    ) -> None:
        event = DomainEvent(
            type=event_type,
            ticket_id=ticket_id,
            actor_id=actor_id,
            timestamp=timestamp,
            payload=payload,
        )
        try:
            await self._publisher.publish(event)
        except Exception:
            logger.exception(
                "Failed to publish domain event",
                extra={"event_type": event_type.value, "ticket_id": ticket_id}
            )


class TicketService:
    """
    Service for the ticket lifecycle.

    Coordinates between domain rules and data access.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        history_repository: IHistoryRepository,
        number_sequence: ITicketNumberSequence,
        user_directory: IUserDirectory,
        unit_of_work: IUnitOfWork,
        publisher: IEventPublisher,
        sla_config: Optional[SLAConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._tickets = ticket_repository
        self._history = history_repository
        self._sequence = number_sequence
        self._directory = user_directory
        self._uow = unit_of_work
        self._events = EventEmitter(publisher)
        self._sla_config = sla_config or SLAConfig()
        self._clock = clock

    # ---------- Queries ----------

    async def get_ticket(self, ticket_id: str, actor: Actor) -> Ticket:
        """
        Raises:
            ResourceNotFoundException: Unknown ticket id
            ForbiddenException: Actor may not see the ticket
        """
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        assert_can_access(ticket, actor.id, actor.role)
        return ticket

    async def list_tickets(
        self,
        actor: Actor,
        ticket_filter: Optional[TicketFilter] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Ticket], int]:
        """Role-scoped listing, most recently updated first."""
        if page < 1:
            raise ValidationException("page must be at least 1", {"page": page})
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return await self._tickets.search(
            ticket_filter or TicketFilter(),
            actor=actor,
            limit=limit,
            offset=(page - 1) * limit,
        )

    async def get_history(self, ticket_id: str, actor: Actor) -> List[HistoryEntry]:
        await self.get_ticket(ticket_id, actor)
        return await self._history.list_for_ticket(ticket_id)

    async def list_breached(self, actor: Actor) -> List[Ticket]:
        """Open tickets past their due date right now."""
        if not has_elevated_access(actor.role):
            raise ForbiddenException("Only support staff can list SLA breaches")
        return await self._tickets.find_breached(self._clock())

    # ---------- Commands ----------

    async def create_ticket(self, request: TicketCreateRequest, actor: Actor) -> Ticket:
        """Open a new ticket with the next number for the current year."""
        now = self._clock()

        try:
            sequence = await self._sequence.next_value(now.year)
            ticket = Ticket(
                id=str(uuid4()),
                ticket_number=format_ticket_number(now.year, sequence),
                title=request.title.strip(),
                description=request.description,
                category=request.category,
                subcategory=request.subcategory,
                priority=request.priority,
                impact=request.impact,
                urgency=request.urgency,
                service_level=request.service_level,
                status=TicketStatus.NEW,
                requester_id=actor.id,
                assigned_to_id=None,
                created_at=now,
                updated_at=now,
                due_date=SLACalculator.compute_due_date(
                    now, request.service_level, self._sla_config
                ),
            )
            ticket = await self._tickets.add(ticket)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "service_level": ticket.service_level.value,
                "actor_id": actor.id,
            }
        )
        await self._events.emit(
            EventType.TICKET_CREATED, ticket.id, actor.id, now,
            {
                "ticket_number": ticket.ticket_number,
                "requester_id": ticket.requester_id,
                "priority": ticket.priority.value,
                "due_date": ticket.due_date.isoformat() if ticket.due_date else None,
            }
        )
        return ticket

    async def update_fields(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        actor: Actor,
    ) -> Ticket:
        """
        Apply several field changes as one atomic update.

        Raises:
            ResourceNotFoundException: Unknown ticket
            ForbiddenException: Non-support actor changing priority or service level
        """
        ticket = await self.get_ticket(ticket_id, actor)
        if not changes:
            return ticket

        if not has_elevated_access(actor.role):
            restricted = [name for name in changes if name in RESTRICTED_FIELDS]
            if restricted:
                raise ForbiddenException(
                    "Only support staff can change priority or service level",
                    {"fields": restricted}
                )

        mutations = [FieldChange(field=name, value=value) for name, value in changes.items()]
        updated, _ = await self._apply(ticket_id, mutations, actor, loaded=ticket)
        return updated

    async def change_status(
        self,
        ticket_id: str,
        new_status: TicketStatus,
        actor: Actor,
        resolution: Optional[str] = None,
    ) -> Ticket:
        """
        Move a ticket through its lifecycle.

        Requesters without a support role may only reopen their own
        resolved or closed tickets.
        """
        ticket = await self.get_ticket(ticket_id, actor)
        new_status = TicketStatus(new_status)

        if not has_elevated_access(actor.role):
            is_reopen = (
                new_status in (TicketStatus.REOPENED, TicketStatus.OPEN)
                and ticket.status in TERMINAL_STATUSES
            )
            if not (is_reopen and ticket.requester_id == actor.id):
                raise ForbiddenException(
                    "You can only reopen your own resolved or closed tickets",
                    {"ticket_id": ticket_id}
                )

        previous = ticket.status
        updated, _ = await self._apply(
            ticket_id, [StatusChange(new_status=new_status, resolution=resolution)], actor,
            loaded=ticket,
        )

        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": ticket_id,
                "from_status": previous.value,
                "to_status": updated.status.value,
                "actor_id": actor.id,
            }
        )
        await self._events.emit(
            EventType.TICKET_STATUS_CHANGED, ticket_id, actor.id, updated.updated_at,
            {
                "ticket_number": updated.ticket_number,
                "from": previous.value,
                "to": updated.status.value,
                "requester_id": updated.requester_id,
                "assigned_to_id": updated.assigned_to_id,
            }
        )
        return updated

    async def assign(
        self,
        ticket_id: str,
        assignee_id: Optional[str],
        actor: Actor,
    ) -> Ticket:
        """
        Set or clear the assignee. Assigning a NEW ticket opens it.

        Raises:
            ForbiddenException: Actor lacks a support role
            ResourceNotFoundException: Unknown ticket or assignee
            ValidationException: Assignee is inactive or not support staff
        """
        if not has_elevated_access(actor.role):
            raise ForbiddenException("Only support staff can assign tickets")

        if assignee_id is not None:
            assignee = await self._directory.get(assignee_id)
            if assignee is None:
                raise ResourceNotFoundException("User", assignee_id)
            if not assignee.is_active or not has_elevated_access(assignee.role):
                raise ValidationException(
                    "Tickets can only be assigned to active support staff",
                    {"assignee_id": assignee_id, "role": assignee.role.value}
                )

        ticket = await self.get_ticket(ticket_id, actor)
        previous_assignee = ticket.assigned_to_id
        previous_status = ticket.status

        updated, entries = await self._apply(
            ticket_id, [Assignment(assignee_id=assignee_id)], actor, loaded=ticket
        )
        if not entries:
            return updated

        logger.info(
            "Ticket assigned",
            extra={
                "ticket_id": ticket_id,
                "assignee_id": assignee_id,
                "actor_id": actor.id,
            }
        )
        await self._events.emit(
            EventType.TICKET_ASSIGNED, ticket_id, actor.id, updated.updated_at,
            {
                "ticket_number": updated.ticket_number,
                "assigned_to_id": assignee_id,
                "previous_assigned_to_id": previous_assignee,
                "status": updated.status.value,
                "previous_status": previous_status.value,
            }
        )
        return updated

    # ---------- Unit of work ----------

    async def _apply(
        self,
        ticket_id: str,
        mutations: Sequence[Mutation],
        actor: Actor,
        loaded: Optional[Ticket] = None,
    ) -> Tuple[Ticket, List[HistoryEntry]]:
        original = loaded or await self.get_ticket(ticket_id, actor)
        now = self._clock()

        ticket = original
        entries: List[HistoryEntry] = []
        for mutation in mutations:
            ticket, produced = apply_change(ticket, mutation, actor, now, self._sla_config)
            entries.extend(produced)

        if ticket is original:
            return original, []

        try:
            saved = await self._tickets.save(ticket, expected_version=original.version)
            if entries:
                await self._history.append(entries)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        return saved, entries


class UserDirectoryService:
    """Maintains the local copy of the identity provider's users."""

    def __init__(self, user_directory: IUserDirectory, unit_of_work: IUnitOfWork):
        self._directory = user_directory
        self._uow = unit_of_work

    async def upsert_user(self, user: DirectoryUser, actor: Actor) -> DirectoryUser:
        if actor.role != Role.ADMIN:
            raise ForbiddenException("Only administrators can manage the user directory")
        try:
            saved = await self._directory.upsert(user)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise
        logger.info("Directory user upserted", extra={"user_id": user.id, "role": user.role.value})
        return saved

    async def get_user(self, user_id: str) -> DirectoryUser:
        user = await self._directory.get(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        return user
