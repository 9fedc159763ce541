"""
Model <-> Entity Mapping
========================

Conversions between SQLAlchemy rows and ticket domain entities.
"""

from typing import Optional
from uuid import UUID

from src.config import (
    Impact, Priority, Role, ServiceLevel, TicketCategory, TicketStatus, Urgency,
)
from src.tickets.domain.entities import (
    Attachment, Comment, DirectoryUser, HistoryEntry, Ticket,
)
from src.tickets.infrastructure.models import (
    AttachmentModel, CommentModel, TicketHistoryModel, TicketModel, UserModel,
)


def parse_uuid(value: str) -> Optional[UUID]:
    """UUID from a path/query id; None when malformed."""
    try:
        return UUID(str(value))
    except ValueError:
        return None


def to_ticket(model: TicketModel) -> Ticket:
    return Ticket(
        id=str(model.id),
        ticket_number=model.ticket_number,
        title=model.title,
        description=model.description,
        category=TicketCategory(model.category),
        subcategory=model.subcategory,
        priority=Priority(model.priority),
        impact=Impact(model.impact),
        urgency=Urgency(model.urgency),
        service_level=ServiceLevel(model.service_level),
        status=TicketStatus(model.status),
        requester_id=model.requester_id,
        assigned_to_id=model.assigned_to_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        due_date=model.due_date,
        closed_at=model.closed_at,
        resolution=model.resolution,
        first_response_at=model.first_response_at,
        version=model.version,
    )


def ticket_columns(ticket: Ticket) -> dict:
    """Mutable column values of a ticket, ready for INSERT/UPDATE."""
    return {
        "title": ticket.title,
        "description": ticket.description,
        "category": ticket.category.value,
        "subcategory": ticket.subcategory,
        "priority": ticket.priority.value,
        "impact": ticket.impact.value,
        "urgency": ticket.urgency.value,
        "service_level": ticket.service_level.value,
        "status": ticket.status.value,
        "assigned_to_id": ticket.assigned_to_id,
        "resolution": ticket.resolution,
        "updated_at": ticket.updated_at,
        "due_date": ticket.due_date,
        "closed_at": ticket.closed_at,
        "first_response_at": ticket.first_response_at,
    }


def to_history(model: TicketHistoryModel) -> HistoryEntry:
    return HistoryEntry(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        sequence=model.sequence,
        field=model.field,
        old_value=model.old_value,
        new_value=model.new_value,
        changed_by=model.changed_by,
        changed_at=model.changed_at,
    )


def to_comment(model: CommentModel) -> Comment:
    return Comment(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        author_id=model.author_id,
        content=model.content,
        is_internal=model.is_internal,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_attachment(model: AttachmentModel) -> Attachment:
    return Attachment(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        filename=model.filename,
        size=model.size,
        mime_type=model.mime_type,
        storage_key=model.storage_key,
        uploaded_by=model.uploaded_by,
        created_at=model.created_at,
    )


def to_user(model: UserModel) -> DirectoryUser:
    return DirectoryUser(
        id=model.id,
        name=model.name,
        email=model.email,
        role=Role(model.role),
        is_active=model.is_active,
    )
