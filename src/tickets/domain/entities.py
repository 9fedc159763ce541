"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket lifecycle.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.config import (
    Impact, Priority, Role, ServiceLevel, TicketCategory, TicketStatus, Urgency,
    PENDING_STATUSES, TERMINAL_STATUSES,
)


@dataclass
class Ticket:
    """
    Ticket entity representing a support request.

    Instances are treated as values by the lifecycle: every change produces
    a new Ticket through ``dataclasses.replace``, which re-runs the
    invariant checks below.
    """

    # Identity
    id: str
    ticket_number: str

    # Content
    title: str
    description: str

    # Classification
    category: TicketCategory
    subcategory: Optional[str]
    priority: Priority
    impact: Impact
    urgency: Urgency
    service_level: ServiceLevel

    # Lifecycle
    status: TicketStatus
    requester_id: str
    assigned_to_id: Optional[str]

    # Timestamps
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    resolution: Optional[str] = None
    first_response_at: Optional[datetime] = None

    # Optimistic concurrency counter
    version: int = 1

    def __post_init__(self):
        """Validate ticket invariants."""
        if self.status == TicketStatus.REOPENED:
            raise ValueError("REOPENED is a transition target, not a stored status")

        if self.due_date is not None and self.due_date < self.created_at:
            raise ValueError("due_date cannot be before created_at")

        if (self.closed_at is not None) != (self.status in TERMINAL_STATUSES):
            raise ValueError("closed_at must be set exactly when the ticket is resolved or closed")

    @property
    def is_open(self) -> bool:
        """Check if ticket is still being worked on."""
        return self.status in PENDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Check if ticket has been resolved or closed."""
        return self.status in TERMINAL_STATUSES

    def is_visible_to(self, actor_id: str) -> bool:
        """Requester or assignee; role-based visibility is checked in access."""
        return actor_id in (self.requester_id, self.assigned_to_id)


@dataclass
class HistoryEntry:
    """
    Immutable audit record of one field mutation.

    ``sequence`` is assigned by the repository when the entry is appended.
    """
    ticket_id: str
    field: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by: str
    changed_at: datetime
    sequence: Optional[int] = None
    id: Optional[str] = None


@dataclass
class Comment:
    """Comment on a ticket. Internal comments are hidden from requesters."""
    id: str
    ticket_id: str
    author_id: str
    content: str
    is_internal: bool
    created_at: datetime
    updated_at: datetime

    @property
    def owner_id(self) -> str:
        return self.author_id


@dataclass
class Attachment:
    """Attachment metadata. Bytes live in the external file store."""
    id: str
    ticket_id: str
    filename: str
    size: int
    mime_type: str
    storage_key: str
    uploaded_by: str
    created_at: datetime

    @property
    def owner_id(self) -> str:
        return self.uploaded_by


@dataclass
class DirectoryUser:
    """User as known to the identity provider, mirrored locally."""
    id: str
    name: str
    email: str
    role: Role
    is_active: bool = True
