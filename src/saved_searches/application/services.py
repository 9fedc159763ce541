"""
Saved Search Application Services
=================================

Persists filter criteria and replays them through the ticket search, which
uses the same predicate builder as reports.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from src.core import ResourceNotFoundException, ValidationException
from src.reports.domain.filters import TicketFilter
from src.saved_searches.domain import SavedSearch
from src.shared.domain import Actor
from src.shared.infrastructure.logging import get_logger
from src.tickets.application.services import (
    MAX_PAGE_SIZE,
    ITicketRepository,
    IUnitOfWork,
    utcnow,
)
from src.tickets.domain import Ticket

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "description", "criteria", "is_public")


class ISavedSearchRepository(ABC):
    """Interface for saved search data access."""

    @abstractmethod
    async def get_by_id(self, search_id: str) -> Optional[SavedSearch]:
        """Get saved search by ID."""

    @abstractmethod
    async def add(self, search: SavedSearch) -> SavedSearch:
        """Insert a saved search."""

    @abstractmethod
    async def update(self, search: SavedSearch) -> SavedSearch:
        """Persist changes to a saved search."""

    @abstractmethod
    async def delete(self, search_id: str) -> None:
        """Remove a saved search."""

    @abstractmethod
    async def list_owned(self, owner_id: str) -> List[SavedSearch]:
        """Searches of one owner, newest first."""

    @abstractmethod
    async def list_public(self, exclude_owner_id: Optional[str] = None, limit: Optional[int] = None) -> List[SavedSearch]:
        """Public searches, newest first."""


class SavedSearchService:
    """Service for saved searches."""

    def __init__(
        self,
        saved_search_repository: ISavedSearchRepository,
        ticket_repository: ITicketRepository,
        unit_of_work: IUnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._searches = saved_search_repository
        self._tickets = ticket_repository
        self._uow = unit_of_work
        self._clock = clock

    async def _commit(self) -> None:
        try:
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

    async def _load(self, search_id: str) -> SavedSearch:
        search = await self._searches.get_by_id(search_id)
        if search is None:
            raise ResourceNotFoundException("Saved search", search_id)
        return search

    async def create(
        self,
        actor_id: str,
        name: str,
        criteria: TicketFilter,
        description: Optional[str] = None,
        is_public: bool = False,
    ) -> SavedSearch:
        if not name or not name.strip():
            raise ValidationException("Saved search name cannot be empty", {"field": "name"})

        now = self._clock()
        search = SavedSearch(
            id=str(uuid4()),
            owner_id=actor_id,
            name=name.strip(),
            description=description,
            criteria=criteria,
            is_public=is_public,
            created_at=now,
            updated_at=now,
        )
        try:
            search = await self._searches.add(search)
        except Exception:
            await self._uow.rollback()
            raise
        await self._commit()
        logger.info("Saved search created", extra={"saved_search_id": search.id, "owner_id": actor_id})
        return search

    async def update(
        self,
        search_id: str,
        actor_id: str,
        changes: Dict[str, Any],
    ) -> SavedSearch:
        """Owner-only partial update."""
        search = await self._load(search_id)
        search.assert_owned_by(actor_id)

        unknown = [name for name in changes if name not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationException("Unknown saved search fields", {"fields": unknown})
        if "name" in changes:
            if not changes["name"] or not changes["name"].strip():
                raise ValidationException("Saved search name cannot be empty", {"field": "name"})
            changes = {**changes, "name": changes["name"].strip()}
        if "is_public" in changes and changes["is_public"] is None:
            raise ValidationException("is_public cannot be null", {"field": "is_public"})
        if "criteria" in changes and changes["criteria"] is None:
            changes = {**changes, "criteria": TicketFilter()}

        updated = replace(search, updated_at=self._clock(), **changes)
        try:
            updated = await self._searches.update(updated)
        except Exception:
            await self._uow.rollback()
            raise
        await self._commit()
        return updated

    async def delete(self, search_id: str, actor_id: str) -> None:
        search = await self._load(search_id)
        search.assert_owned_by(actor_id)
        try:
            await self._searches.delete(search_id)
        except Exception:
            await self._uow.rollback()
            raise
        await self._commit()

    async def find_all(self, actor_id: str, include_public: bool = True) -> List[SavedSearch]:
        """The actor's own searches first, then other people's public ones."""
        owned = await self._searches.list_owned(actor_id)
        if not include_public:
            return owned
        return owned + await self._searches.list_public(exclude_owner_id=actor_id)

    async def find_one(self, search_id: str, actor_id: str) -> SavedSearch:
        """
        Raises:
            ResourceNotFoundException: Unknown id
            ForbiddenException: Private search of someone else
        """
        search = await self._load(search_id)
        search.assert_readable_by(actor_id)
        return search

    async def execute(
        self,
        search_id: str,
        actor: Actor,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[SavedSearch, List[Ticket], int]:
        """Run the stored criteria within the actor's own ticket visibility."""
        search = await self.find_one(search_id, actor.id)
        if page < 1:
            raise ValidationException("page must be at least 1", {"page": page})
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        tickets, total = await self._tickets.search(
            search.criteria,
            actor=actor,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return search, tickets, total

    async def duplicate(
        self,
        search_id: str,
        actor_id: str,
        new_name: Optional[str] = None,
    ) -> SavedSearch:
        """Private copy owned by the actor."""
        original = await self.find_one(search_id, actor_id)
        name = new_name if new_name and new_name.strip() else f"{original.name} (Copy)"
        return await self.create(
            actor_id,
            name,
            original.criteria,
            description=original.description,
            is_public=False,
        )

    async def popular(self, limit: int = 10) -> List[SavedSearch]:
        """Most recent public searches."""
        return await self._searches.list_public(limit=max(1, min(limit, MAX_PAGE_SIZE)))
