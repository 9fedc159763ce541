"""
Ticket Application DTOs
=======================

Data Transfer Objects for the ticket API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import (
    Impact, Priority, Role, ServiceLevel, TicketCategory, TicketStatus, Urgency,
)
from src.sla.domain import SLACalculator
from src.tickets.domain import Attachment, Comment, DirectoryUser, HistoryEntry, Ticket


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for opening a ticket. Unset classification uses defaults."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=500, description="Short summary")
    description: str = Field(..., min_length=1, description="Problem description")
    category: TicketCategory = Field(..., description="Top-level category")
    subcategory: Optional[str] = Field(None, max_length=255, description="Free-text subcategory")
    priority: Priority = Field(default=Priority.MEDIUM)
    impact: Impact = Field(default=Impact.MODERATE)
    urgency: Urgency = Field(default=Urgency.NORMAL)
    service_level: ServiceLevel = Field(default=ServiceLevel.STANDARD)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class TicketUpdateRequest(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[TicketCategory] = None
    subcategory: Optional[str] = Field(None, max_length=255)
    priority: Optional[Priority] = None
    impact: Optional[Impact] = None
    urgency: Optional[Urgency] = None
    service_level: Optional[ServiceLevel] = None

    def changes(self) -> dict:
        """Fields explicitly sent by the client, in a stable order."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name in self.model_fields_set
        }


class StatusChangeRequest(BaseModel):
    """Request model for a status transition."""
    status: TicketStatus = Field(..., description="Target status (REOPENED re-opens)")
    resolution: Optional[str] = Field(None, description="Required when resolving")


class AssignRequest(BaseModel):
    """Request model for (un)assigning a ticket."""
    assignee_id: Optional[str] = Field(None, description="Support user id, null to unassign")


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    is_internal: bool = Field(default=False, description="Hidden from the requester")


class CommentUpdateRequest(BaseModel):
    content: Optional[str] = Field(None, min_length=1)
    is_internal: Optional[bool] = None


class AttachmentCreateRequest(BaseModel):
    """Metadata of a file already uploaded to the file store."""
    filename: str = Field(..., min_length=1, max_length=255)
    size: int = Field(..., ge=0, description="Size in bytes")
    mime_type: str = Field(..., min_length=1, max_length=100)
    storage_key: str = Field(..., min_length=1, max_length=500, description="Opaque storage reference")


class UserUpsertRequest(BaseModel):
    """Directory entry pushed by the identity provider sync."""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role: Role = Field(default=Role.END_USER)
    is_active: bool = Field(default=True)


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Ticket with its live SLA breach flag."""
    id: str
    ticket_number: str
    title: str
    description: str
    category: TicketCategory
    subcategory: Optional[str]
    priority: Priority
    impact: Impact
    urgency: Urgency
    service_level: ServiceLevel
    status: TicketStatus
    requester_id: str
    assigned_to_id: Optional[str]
    resolution: Optional[str]
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime]
    closed_at: Optional[datetime]
    first_response_at: Optional[datetime]
    version: int
    is_breached: bool
    is_compliant: Optional[bool]

    @classmethod
    def from_entity(cls, ticket: Ticket, now: datetime) -> "TicketResponse":
        return cls(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category,
            subcategory=ticket.subcategory,
            priority=ticket.priority,
            impact=ticket.impact,
            urgency=ticket.urgency,
            service_level=ticket.service_level,
            status=ticket.status,
            requester_id=ticket.requester_id,
            assigned_to_id=ticket.assigned_to_id,
            resolution=ticket.resolution,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            due_date=ticket.due_date,
            closed_at=ticket.closed_at,
            first_response_at=ticket.first_response_at,
            version=ticket.version,
            is_breached=SLACalculator.is_breached(ticket.status, ticket.due_date, now),
            is_compliant=SLACalculator.is_compliant(ticket.closed_at, ticket.due_date),
        )


class TicketListResponse(BaseModel):
    items: List[TicketResponse]
    total: int
    page: int
    limit: int


class HistoryEntryResponse(BaseModel):
    sequence: int
    field: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by: str
    changed_at: datetime

    @classmethod
    def from_entity(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(
            sequence=entry.sequence,
            field=entry.field,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=entry.changed_by,
            changed_at=entry.changed_at,
        )


class CommentResponse(BaseModel):
    id: str
    ticket_id: str
    author_id: str
    content: str
    is_internal: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            ticket_id=comment.ticket_id,
            author_id=comment.author_id,
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class AttachmentResponse(BaseModel):
    id: str
    ticket_id: str
    filename: str
    size: int
    mime_type: str
    storage_key: str
    uploaded_by: str
    created_at: datetime

    @classmethod
    def from_entity(cls, attachment: Attachment) -> "AttachmentResponse":
        return cls(
            id=attachment.id,
            ticket_id=attachment.ticket_id,
            filename=attachment.filename,
            size=attachment.size,
            mime_type=attachment.mime_type,
            storage_key=attachment.storage_key,
            uploaded_by=attachment.uploaded_by,
            created_at=attachment.created_at,
        )


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    is_active: bool

    @classmethod
    def from_entity(cls, user: DirectoryUser) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
        )
