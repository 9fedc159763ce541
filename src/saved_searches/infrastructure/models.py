"""
Saved Search Infrastructure Models
==================================

SQLAlchemy ORM model for saved searches. Criteria are stored as JSON text
and only ever parsed back into a TicketFilter.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database import Base
from src.infrastructure.database.types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedSearchModel(Base):
    """
    Database model for SavedSearch entity.

    Maps to the 'saved_searches' table.
    """
    __tablename__ = "saved_searches"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    criteria: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_saved_searches_owner_created", "owner_id", "created_at"),
        Index("ix_saved_searches_public_created", "is_public", "created_at"),
    )
