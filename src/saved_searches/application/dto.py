"""
Saved Search DTOs
=================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.reports.domain.filters import TicketFilter
from src.saved_searches.domain import SavedSearch
from src.tickets.application.dto import TicketResponse


class SavedSearchCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    criteria: TicketFilter = Field(default_factory=TicketFilter)
    is_public: bool = False


class SavedSearchUpdateRequest(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    criteria: Optional[TicketFilter] = None
    is_public: Optional[bool] = None

    def changes(self) -> dict:
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name in self.model_fields_set
        }


class DuplicateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=255, description="Defaults to '<original> (Copy)'")


class SavedSearchResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str]
    criteria: TicketFilter
    is_public: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, search: SavedSearch) -> "SavedSearchResponse":
        return cls(
            id=search.id,
            owner_id=search.owner_id,
            name=search.name,
            description=search.description,
            criteria=search.criteria,
            is_public=search.is_public,
            created_at=search.created_at,
            updated_at=search.updated_at,
        )


class SavedSearchResultResponse(BaseModel):
    search: SavedSearchResponse
    items: List[TicketResponse]
    total: int
    page: int
    limit: int
