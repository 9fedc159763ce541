"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the ticket module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.config import (
    Impact, Priority, Role, ServiceLevel, TicketCategory, TicketStatus, Urgency,
)
from src.infrastructure.database import Base
from src.infrastructure.database.types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    """
    Local mirror of the identity provider's user directory.

    Maps to the 'users' table. Ids are the identity provider's subject ids.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[Role] = mapped_column(String(50), nullable=False, default=Role.END_USER)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Business identifier, TKT-YYYY-NNNNNN
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Classification
    category: Mapped[TicketCategory] = mapped_column(String(50), nullable=False, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM, index=True)
    impact: Mapped[Impact] = mapped_column(String(50), nullable=False, default=Impact.MODERATE)
    urgency: Mapped[Urgency] = mapped_column(String(50), nullable=False, default=Urgency.NORMAL)
    service_level: Mapped[ServiceLevel] = mapped_column(String(50), nullable=False, default=ServiceLevel.STANDARD)

    # Lifecycle
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.NEW, index=True)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    assigned_to_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    due_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class TicketHistoryModel(Base):
    """
    Append-only audit trail, one row per field mutation.

    Maps to the 'ticket_history' table.
    """
    __tablename__ = "ticket_history"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    field: Mapped[str] = mapped_column(String(50), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("ticket_id", "sequence", name="uq_ticket_history_sequence"),
    )


class TicketSequenceModel(Base):
    """
    Durable per-year counter behind ticket numbers.

    Maps to the 'ticket_sequences' table.
    """
    __tablename__ = "ticket_sequences"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CommentModel(Base):
    """
    Database model for Comment entity.

    Maps to the 'comments' table.
    """
    __tablename__ = "comments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_comments_ticket_created", "ticket_id", "created_at"),
    )


class AttachmentModel(Base):
    """
    Attachment metadata. The file itself lives in external storage.

    Maps to the 'attachments' table.
    """
    __tablename__ = "attachments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
