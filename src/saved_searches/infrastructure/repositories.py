"""
Saved Search Repositories
=========================

SQLAlchemy implementation of the saved search repository. The typed
TicketFilter is (de)serialized to JSON here and nowhere else.
"""

from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import RepositoryException
from src.reports.domain.filters import TicketFilter
from src.saved_searches.application.services import ISavedSearchRepository
from src.saved_searches.domain import SavedSearch
from src.saved_searches.infrastructure.models import SavedSearchModel
from src.tickets.infrastructure.mappers import parse_uuid


def serialize_criteria(criteria: TicketFilter) -> str:
    return criteria.model_dump_json(exclude_defaults=True)


def deserialize_criteria(raw: str) -> TicketFilter:
    try:
        return TicketFilter.model_validate_json(raw or "{}")
    except ValidationError as e:
        raise RepositoryException("Stored search criteria are invalid", {"error": str(e)}) from e


def to_saved_search(model: SavedSearchModel) -> SavedSearch:
    return SavedSearch(
        id=str(model.id),
        owner_id=model.owner_id,
        name=model.name,
        description=model.description,
        criteria=deserialize_criteria(model.criteria),
        is_public=model.is_public,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class SQLAlchemySavedSearchRepository(ISavedSearchRepository):
    """SQLAlchemy implementation of saved search repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, search_id: str) -> Optional[SavedSearchModel]:
        search_uuid = parse_uuid(search_id)
        if search_uuid is None:
            return None
        return await self._session.get(SavedSearchModel, search_uuid)

    async def get_by_id(self, search_id: str) -> Optional[SavedSearch]:
        model = await self._get_model(search_id)
        return to_saved_search(model) if model else None

    async def add(self, search: SavedSearch) -> SavedSearch:
        model = SavedSearchModel(
            id=parse_uuid(search.id),
            owner_id=search.owner_id,
            name=search.name,
            description=search.description,
            criteria=serialize_criteria(search.criteria),
            is_public=search.is_public,
            created_at=search.created_at,
            updated_at=search.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        return to_saved_search(model)

    async def update(self, search: SavedSearch) -> SavedSearch:
        model = await self._get_model(search.id)
        if model is None:
            raise RepositoryException(f"Saved search {search.id} not found")
        model.name = search.name
        model.description = search.description
        model.criteria = serialize_criteria(search.criteria)
        model.is_public = search.is_public
        model.updated_at = search.updated_at
        await self._session.flush()
        return to_saved_search(model)

    async def delete(self, search_id: str) -> None:
        await self._session.execute(
            delete(SavedSearchModel).where(SavedSearchModel.id == parse_uuid(search_id))
        )

    async def list_owned(self, owner_id: str) -> List[SavedSearch]:
        stmt = (
            select(SavedSearchModel)
            .where(SavedSearchModel.owner_id == owner_id)
            .order_by(SavedSearchModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [to_saved_search(model) for model in result.scalars().all()]

    async def list_public(
        self,
        exclude_owner_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SavedSearch]:
        conditions = [SavedSearchModel.is_public.is_(True)]
        if exclude_owner_id is not None:
            conditions.append(SavedSearchModel.owner_id != exclude_owner_id)

        stmt = (
            select(SavedSearchModel)
            .where(and_(*conditions))
            .order_by(SavedSearchModel.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [to_saved_search(model) for model in result.scalars().all()]
