"""
Ticket Lifecycle
================

State machine and pure mutation rules for tickets.

``apply_change`` is the single entry point for changing a ticket: it takes
the current ticket and one mutation and returns the new ticket together with
the history entries describing the change. It does no I/O; the application
service persists both halves in one transaction.

Transition table:

    NEW          -> OPEN, IN_PROGRESS, RESOLVED, CLOSED
    OPEN         -> IN_PROGRESS, RESOLVED, CLOSED
    IN_PROGRESS  -> OPEN, RESOLVED, CLOSED
    RESOLVED     -> CLOSED, OPEN (reopen)
    CLOSED       -> OPEN (reopen)

REOPENED may be requested from RESOLVED or CLOSED and lands in OPEN.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from src.config import (
    Impact, Priority, ServiceLevel, TicketCategory, TicketStatus, Urgency,
    TERMINAL_STATUSES,
)
from src.core import InvalidTransitionException, ValidationException
from src.shared.domain import Actor
from src.sla.domain import SLACalculator, SLAConfig
from src.tickets.domain.entities import HistoryEntry, Ticket


TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.NEW: frozenset({
        TicketStatus.OPEN, TicketStatus.IN_PROGRESS,
        TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.OPEN: frozenset({
        TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.IN_PROGRESS: frozenset({
        TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.OPEN}),
    TicketStatus.CLOSED: frozenset({TicketStatus.OPEN}),
}

# Fields whose changes are written to the audit trail
TRACKED_FIELDS = (
    "category", "subcategory", "priority", "impact",
    "urgency", "service_level", "assigned_to_id",
)

# Fields changeable through FieldChange, with their value types
EDITABLE_FIELDS: Dict[str, Any] = {
    "title": str,
    "description": str,
    "category": TicketCategory,
    "subcategory": str,
    "priority": Priority,
    "impact": Impact,
    "urgency": Urgency,
    "service_level": ServiceLevel,
}


@dataclass(frozen=True)
class StatusChange:
    """Move the ticket to another status."""
    new_status: TicketStatus
    resolution: Optional[str] = None


@dataclass(frozen=True)
class FieldChange:
    """Set one classification or content field."""
    field: str
    value: Any


@dataclass(frozen=True)
class Assignment:
    """Set or clear the assignee."""
    assignee_id: Optional[str]


Mutation = Union[StatusChange, FieldChange, Assignment]


def resolve_transition(current: TicketStatus, requested: TicketStatus) -> TicketStatus:
    """
    Validate a requested status change and return the status to store.

    Raises:
        InvalidTransitionException: If the transition is not in the table
    """
    current = TicketStatus(current)
    requested = TicketStatus(requested)

    if requested == TicketStatus.REOPENED:
        if current not in TERMINAL_STATUSES:
            raise InvalidTransitionException(current.value, requested.value)
        return TicketStatus.OPEN

    if requested not in TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionException(current.value, requested.value)
    return requested


def is_transition_allowed(current: TicketStatus, requested: TicketStatus) -> bool:
    try:
        resolve_transition(current, requested)
    except InvalidTransitionException:
        return False
    return True


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _history(
    ticket: Ticket, field: str, old: Any, new: Any, actor: Actor, now: datetime
) -> HistoryEntry:
    return HistoryEntry(
        ticket_id=ticket.id,
        field=field,
        old_value=_serialize(old),
        new_value=_serialize(new),
        changed_by=actor.id,
        changed_at=now,
    )


def _coerce_field_value(field: str, value: Any) -> Any:
    if field not in EDITABLE_FIELDS:
        raise ValidationException(f"Field '{field}' cannot be changed", {"field": field})

    value_type = EDITABLE_FIELDS[field]

    if value is None:
        if field == "subcategory":
            return None
        raise ValidationException(f"Field '{field}' is required", {"field": field})

    if value_type is str:
        if not isinstance(value, str):
            raise ValidationException(f"Field '{field}' must be text", {"field": field})
        if field in ("title", "description") and not value.strip():
            raise ValidationException(f"Field '{field}' cannot be empty", {"field": field})
        return value

    try:
        return value_type(value)
    except ValueError:
        allowed = [member.value for member in value_type]
        raise ValidationException(
            f"Invalid value '{value}' for {field}",
            {"field": field, "allowed": allowed}
        )


def _counts_as_first_response(ticket: Ticket, actor: Actor, new_status: TicketStatus) -> bool:
    return (
        ticket.first_response_at is None
        and ticket.status == TicketStatus.NEW
        and new_status != TicketStatus.NEW
        and actor.is_elevated
        and actor.id != ticket.requester_id
    )


def _apply_status(
    ticket: Ticket, change: StatusChange, actor: Actor, now: datetime
) -> Tuple[Ticket, List[HistoryEntry]]:
    target = resolve_transition(ticket.status, change.new_status)

    resolution = ticket.resolution
    if target == TicketStatus.RESOLVED:
        if not change.resolution or not change.resolution.strip():
            raise ValidationException(
                "A resolution is required to resolve a ticket",
                {"field": "resolution"}
            )
    if change.resolution is not None and change.resolution.strip():
        resolution = change.resolution.strip()

    first_response_at = ticket.first_response_at
    if _counts_as_first_response(ticket, actor, target):
        first_response_at = now

    updated = replace(
        ticket,
        status=target,
        resolution=resolution,
        closed_at=now if target in TERMINAL_STATUSES else None,
        first_response_at=first_response_at,
        updated_at=now,
    )
    return updated, [_history(ticket, "status", ticket.status, target, actor, now)]


def _apply_field(
    ticket: Ticket,
    change: FieldChange,
    actor: Actor,
    now: datetime,
    sla_config: Optional[SLAConfig],
) -> Tuple[Ticket, List[HistoryEntry]]:
    value = _coerce_field_value(change.field, change.value)
    old = getattr(ticket, change.field)
    if old == value:
        return ticket, []

    updates: Dict[str, Any] = {change.field: value, "updated_at": now}

    # Due dates are frozen once the ticket is resolved or closed
    if change.field == "service_level" and not ticket.is_terminal:
        updates["due_date"] = SLACalculator.compute_due_date(
            ticket.created_at, value, sla_config
        )

    entries = []
    if change.field in TRACKED_FIELDS:
        entries.append(_history(ticket, change.field, old, value, actor, now))
    return replace(ticket, **updates), entries


def _apply_assignment(
    ticket: Ticket, change: Assignment, actor: Actor, now: datetime
) -> Tuple[Ticket, List[HistoryEntry]]:
    if change.assignee_id == ticket.assigned_to_id:
        return ticket, []

    updates: Dict[str, Any] = {"assigned_to_id": change.assignee_id, "updated_at": now}
    entries = [
        _history(ticket, "assigned_to_id", ticket.assigned_to_id, change.assignee_id, actor, now)
    ]

    # Assigning a new ticket triages it
    if change.assignee_id is not None and ticket.status == TicketStatus.NEW:
        updates["status"] = TicketStatus.OPEN
        if _counts_as_first_response(ticket, actor, TicketStatus.OPEN):
            updates["first_response_at"] = now
        entries.append(_history(ticket, "status", ticket.status, TicketStatus.OPEN, actor, now))

    return replace(ticket, **updates), entries


def apply_change(
    ticket: Ticket,
    mutation: Mutation,
    actor: Actor,
    now: datetime,
    sla_config: Optional[SLAConfig] = None,
) -> Tuple[Ticket, List[HistoryEntry]]:
    """
    Apply one mutation to a ticket.

    Returns:
        The new ticket and the history entries to append. A mutation that
        changes nothing returns the same ticket and no entries.

    Raises:
        InvalidTransitionException: Status change not in the transition table
        ValidationException: Missing resolution, unknown field or bad value
    """
    if isinstance(mutation, StatusChange):
        return _apply_status(ticket, mutation, actor, now)
    if isinstance(mutation, FieldChange):
        return _apply_field(ticket, mutation, actor, now, sla_config)
    if isinstance(mutation, Assignment):
        return _apply_assignment(ticket, mutation, actor, now)
    raise TypeError(f"Unsupported mutation: {type(mutation).__name__}")
