"""
Shared test fixtures.

Integration and API tests run against an in-memory SQLite database
(aiosqlite) with one shared connection per test.
"""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import Role
from src.infrastructure.database import build_session_maker, create_tables
from src.shared.domain import Actor, DomainEvent, IEventPublisher
from src.sla.domain import SLAConfig
from src.tickets.application import (
    AttachmentService,
    CommentService,
    TicketService,
    UserDirectoryService,
)
from src.tickets.domain import DirectoryUser
from src.tickets.infrastructure.repositories import (
    SQLAlchemyAttachmentRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyHistoryRepository,
    SQLAlchemyTicketNumberSequence,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
    SQLAlchemyUserDirectory,
)

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock; advance it explicitly."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingEventPublisher(IEventPublisher):
    def __init__(self):
        self.events: List[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[DomainEvent]:
        return [event for event in self.events if event.type == event_type]


# ========== Actors ==========

@pytest.fixture
def requester() -> Actor:
    return Actor(id="u-requester", role=Role.END_USER)


@pytest.fixture
def other_user() -> Actor:
    return Actor(id="u-other", role=Role.END_USER)


@pytest.fixture
def agent() -> Actor:
    return Actor(id="u-agent", role=Role.SUPPORT_STAFF)


@pytest.fixture
def second_agent() -> Actor:
    return Actor(id="u-agent-2", role=Role.SUPPORT_STAFF)


@pytest.fixture
def manager() -> Actor:
    return Actor(id="u-manager", role=Role.SUPPORT_MANAGER)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="u-admin", role=Role.ADMIN)


# ========== Infrastructure ==========

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        yield session


# ========== Services ==========

@pytest.fixture
def ticket_service(session, publisher, clock) -> TicketService:
    return TicketService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyHistoryRepository(session),
        SQLAlchemyTicketNumberSequence(session),
        SQLAlchemyUserDirectory(session),
        SQLAlchemyUnitOfWork(session),
        publisher,
        sla_config=SLAConfig(),
        clock=clock,
    )


@pytest.fixture
def comment_service(session, publisher, clock) -> CommentService:
    return CommentService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyCommentRepository(session),
        SQLAlchemyUnitOfWork(session),
        publisher,
        clock=clock,
    )


@pytest.fixture
def attachment_service(session, clock) -> AttachmentService:
    return AttachmentService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyAttachmentRepository(session),
        SQLAlchemyUnitOfWork(session),
        clock=clock,
    )


@pytest.fixture
def directory_service(session) -> UserDirectoryService:
    return UserDirectoryService(SQLAlchemyUserDirectory(session), SQLAlchemyUnitOfWork(session))


@pytest.fixture
async def support_team(directory_service, admin, agent, second_agent, manager) -> List[DirectoryUser]:
    """Directory entries for the support actors plus one inactive agent."""
    users = [
        DirectoryUser(id=agent.id, name="Alice Agent", email="alice@example.com", role=Role.SUPPORT_STAFF),
        DirectoryUser(id=second_agent.id, name="Bob Agent", email="bob@example.com", role=Role.SUPPORT_STAFF),
        DirectoryUser(id=manager.id, name="Carol Manager", email="carol@example.com", role=Role.SUPPORT_MANAGER),
        DirectoryUser(id="u-retired", name="Dave Retired", email="dave@example.com",
                      role=Role.SUPPORT_STAFF, is_active=False),
        DirectoryUser(id="u-requester", name="Erin Requester", email="erin@example.com", role=Role.END_USER),
    ]
    return [await directory_service.upsert_user(user, admin) for user in users]
