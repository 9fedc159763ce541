"""
Ticket Filter
=============

Typed filter criteria shared by reports, ticket listing and saved searches.
Serialized to JSON only when a saved search is persisted.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.config import Priority, TicketCategory, TicketStatus
from src.shared.domain import Actor, has_elevated_access


class TicketFilter(BaseModel):
    """
    Ticket filter criteria.

    Every given field narrows the result (AND); list fields match any of
    their values (OR). The date range applies to ticket creation time and is
    inclusive on both ends.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    date_from: Optional[datetime] = Field(default=None, description="Created at or after")
    date_to: Optional[datetime] = Field(default=None, description="Created at or before")
    requester_id: Optional[str] = Field(default=None, description="Requester user id")
    assigned_to_id: Optional[str] = Field(default=None, description="Assignee user id")
    status: List[TicketStatus] = Field(default_factory=list, description="Any of these statuses")
    priority: List[Priority] = Field(default_factory=list, description="Any of these priorities")
    category: List[TicketCategory] = Field(default_factory=list, description="Any of these categories")

    @field_validator("date_from", "date_to")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive datetimes are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_date_range(self) -> "TicketFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    def scoped_to(self, actor: Actor) -> "TicketFilter":
        """End users only ever see their own tickets."""
        if has_elevated_access(actor.role):
            return self
        return self.model_copy(update={"requester_id": actor.id})
