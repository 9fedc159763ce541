"""Saved searches: ownership, sharing and execution."""

import pytest

from src.config import Role, TicketCategory, TicketStatus
from src.core import ForbiddenException, ResourceNotFoundException, ValidationException
from src.reports.domain import TicketFilter
from src.saved_searches.application import SavedSearchService
from src.saved_searches.infrastructure.repositories import SQLAlchemySavedSearchRepository
from src.shared.domain import Actor
from src.tickets.application.dto import TicketCreateRequest
from src.tickets.infrastructure.repositories import SQLAlchemyTicketRepository, SQLAlchemyUnitOfWork

U1 = Actor(id="u1", role=Role.END_USER)
U2 = Actor(id="u2", role=Role.END_USER)


@pytest.fixture
def saved_search_service(session, clock) -> SavedSearchService:
    return SavedSearchService(
        SQLAlchemySavedSearchRepository(session),
        SQLAlchemyTicketRepository(session),
        SQLAlchemyUnitOfWork(session),
        clock=clock,
    )


NETWORK_ONLY = TicketFilter(category=[TicketCategory.NETWORK], status=[TicketStatus.NEW])


class TestSharing:
    async def test_private_search_forbidden_until_made_public(self, saved_search_service):
        search = await saved_search_service.create(U1.id, "My network tickets", NETWORK_ONLY)

        with pytest.raises(ForbiddenException):
            await saved_search_service.find_one(search.id, U2.id)

        await saved_search_service.update(search.id, U1.id, {"is_public": True})
        shared = await saved_search_service.find_one(search.id, U2.id)

        assert shared.name == "My network tickets"
        assert shared.criteria == NETWORK_ONLY

    async def test_only_owner_updates_or_deletes(self, saved_search_service):
        search = await saved_search_service.create(U1.id, "Mine", TicketFilter(), is_public=True)

        with pytest.raises(ForbiddenException):
            await saved_search_service.update(search.id, U2.id, {"name": "Hijacked"})
        with pytest.raises(ForbiddenException):
            await saved_search_service.delete(search.id, U2.id)

        await saved_search_service.delete(search.id, U1.id)
        with pytest.raises(ResourceNotFoundException):
            await saved_search_service.find_one(search.id, U1.id)

    async def test_find_all_lists_own_then_public(self, saved_search_service, clock):
        own_old = await saved_search_service.create(U1.id, "own old", TicketFilter())
        clock.advance(minutes=1)
        other_public = await saved_search_service.create(U2.id, "u2 public", TicketFilter(), is_public=True)
        clock.advance(minutes=1)
        await saved_search_service.create(U2.id, "u2 private", TicketFilter())
        clock.advance(minutes=1)
        own_new = await saved_search_service.create(U1.id, "own new", TicketFilter())

        listed = await saved_search_service.find_all(U1.id)
        assert [s.id for s in listed] == [own_new.id, own_old.id, other_public.id]

        own_only = await saved_search_service.find_all(U1.id, include_public=False)
        assert [s.id for s in own_only] == [own_new.id, own_old.id]

    async def test_blank_name_rejected(self, saved_search_service):
        with pytest.raises(ValidationException):
            await saved_search_service.create(U1.id, "  ", TicketFilter())


class TestDuplicate:
    async def test_copy_is_private_and_owned_by_caller(self, saved_search_service):
        original = await saved_search_service.create(
            U1.id, "Network", NETWORK_ONLY, description="shared view", is_public=True
        )

        copy = await saved_search_service.duplicate(original.id, U2.id)

        assert copy.id != original.id
        assert copy.owner_id == U2.id
        assert copy.name == "Network (Copy)"
        assert copy.is_public is False
        assert copy.criteria == NETWORK_ONLY

    async def test_private_search_of_someone_else_cannot_be_copied(self, saved_search_service):
        original = await saved_search_service.create(U1.id, "Private", TicketFilter())
        with pytest.raises(ForbiddenException):
            await saved_search_service.duplicate(original.id, U2.id)


class TestExecute:
    async def test_results_limited_to_callers_visibility(
        self, saved_search_service, ticket_service, manager
    ):
        request = TicketCreateRequest(
            title="Wifi drops", description="Office wifi", category=TicketCategory.NETWORK
        )
        mine = await ticket_service.create_ticket(request, U1)
        await ticket_service.create_ticket(request, U2)
        await ticket_service.create_ticket(
            request.model_copy(update={"category": TicketCategory.SOFTWARE}), U1
        )
        search = await saved_search_service.create(U1.id, "Network", NETWORK_ONLY, is_public=True)

        _, tickets, total = await saved_search_service.execute(search.id, U1)
        assert total == 1
        assert [t.id for t in tickets] == [mine.id]

        _, _, manager_total = await saved_search_service.execute(search.id, manager)
        assert manager_total == 2

    async def test_popular_returns_public_searches(self, saved_search_service):
        await saved_search_service.create(U1.id, "Public", TicketFilter(), is_public=True)
        await saved_search_service.create(U1.id, "Private", TicketFilter())

        popular = await saved_search_service.popular()

        assert [s.name for s in popular] == ["Public"]
