"""
Saved Search Controllers (API Routes)
=====================================

FastAPI routes for storing, sharing and running ticket searches.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import get_session
from src.saved_searches.application import SavedSearchService
from src.saved_searches.application.dto import (
    DuplicateRequest,
    SavedSearchCreateRequest,
    SavedSearchResponse,
    SavedSearchResultResponse,
    SavedSearchUpdateRequest,
)
from src.saved_searches.infrastructure.repositories import SQLAlchemySavedSearchRepository
from src.shared.api.dependencies import get_current_actor
from src.shared.domain import Actor
from src.tickets.application.dto import TicketResponse
from src.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
)

saved_search_router = APIRouter(prefix="/saved-searches", tags=["Saved Searches"])


async def get_saved_search_service(
    session: AsyncSession = Depends(get_session),
) -> SavedSearchService:
    """Get saved search service instance."""
    return SavedSearchService(
        SQLAlchemySavedSearchRepository(session),
        SQLAlchemyTicketRepository(session),
        SQLAlchemyUnitOfWork(session),
    )


@saved_search_router.post(
    "",
    response_model=SavedSearchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a search",
)
async def create_saved_search(
    request: SavedSearchCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    search = await service.create(
        actor.id,
        request.name,
        request.criteria,
        description=request.description,
        is_public=request.is_public,
    )
    return SavedSearchResponse.from_entity(search)


@saved_search_router.get(
    "",
    response_model=List[SavedSearchResponse],
    summary="List saved searches",
    description="Your own searches first, then public searches shared by others.",
)
async def list_saved_searches(
    include_public: bool = Query(True),
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    searches = await service.find_all(actor.id, include_public)
    return [SavedSearchResponse.from_entity(search) for search in searches]


@saved_search_router.get(
    "/popular",
    response_model=List[SavedSearchResponse],
    summary="Recently shared public searches",
)
async def popular_saved_searches(
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    return [SavedSearchResponse.from_entity(search) for search in await service.popular(limit)]


@saved_search_router.get("/{search_id}", response_model=SavedSearchResponse)
async def get_saved_search(
    search_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    return SavedSearchResponse.from_entity(await service.find_one(search_id, actor.id))


@saved_search_router.patch("/{search_id}", response_model=SavedSearchResponse)
async def update_saved_search(
    search_id: str,
    request: SavedSearchUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    search = await service.update(search_id, actor.id, request.changes())
    return SavedSearchResponse.from_entity(search)


@saved_search_router.delete("/{search_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_search(
    search_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    await service.delete(search_id, actor.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@saved_search_router.get(
    "/{search_id}/execute",
    response_model=SavedSearchResultResponse,
    summary="Run a saved search",
    description="Results are limited to the tickets the caller can see.",
)
async def execute_saved_search(
    search_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    search, tickets, total = await service.execute(search_id, actor, page, limit)
    now = datetime.now(timezone.utc)
    return SavedSearchResultResponse(
        search=SavedSearchResponse.from_entity(search),
        items=[TicketResponse.from_entity(ticket, now) for ticket in tickets],
        total=total,
        page=page,
        limit=limit,
    )


@saved_search_router.post(
    "/{search_id}/duplicate",
    response_model=SavedSearchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Copy a search into your own private list",
)
async def duplicate_saved_search(
    search_id: str,
    request: Optional[DuplicateRequest] = None,
    actor: Actor = Depends(get_current_actor),
    service: SavedSearchService = Depends(get_saved_search_service),
):
    search = await service.duplicate(search_id, actor.id, request.name if request else None)
    return SavedSearchResponse.from_entity(search)
