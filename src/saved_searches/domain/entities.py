"""
Saved Search Domain Entities
============================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.core import ForbiddenException
from src.reports.domain.filters import TicketFilter


@dataclass
class SavedSearch:
    """
    Reusable ticket filter owned by one user.

    Private searches are visible to their owner only; public ones to every
    authenticated user. Only the owner may change or delete either kind.
    """
    id: str
    owner_id: str
    name: str
    criteria: TicketFilter
    is_public: bool
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None

    def is_readable_by(self, actor_id: str) -> bool:
        return self.is_public or self.owner_id == actor_id

    def assert_readable_by(self, actor_id: str) -> None:
        if not self.is_readable_by(actor_id):
            raise ForbiddenException(
                "You do not have access to this saved search",
                {"saved_search_id": self.id}
            )

    def assert_owned_by(self, actor_id: str) -> None:
        if self.owner_id != actor_id:
            raise ForbiddenException(
                "Only the owner can modify this saved search",
                {"saved_search_id": self.id}
            )
