"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Role, TEAM_ROLES, TERMINAL_STATUSES
from src.core import ConflictException, RepositoryException
from src.reports.domain.filters import TicketFilter
from src.reports.infrastructure.predicates import build_ticket_predicate
from src.shared.domain import Actor
from src.tickets.application.collaboration import IAttachmentRepository, ICommentRepository
from src.tickets.application.services import (
    IHistoryRepository,
    ITicketNumberSequence,
    ITicketRepository,
    IUnitOfWork,
    IUserDirectory,
)
from src.tickets.domain import Attachment, Comment, DirectoryUser, HistoryEntry, Ticket
from src.tickets.infrastructure.mappers import (
    parse_uuid,
    ticket_columns,
    to_attachment,
    to_comment,
    to_history,
    to_ticket,
    to_user,
)
from src.tickets.infrastructure.models import (
    AttachmentModel,
    CommentModel,
    TicketHistoryModel,
    TicketModel,
    TicketSequenceModel,
    UserModel,
)

TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


def listing_scope(actor: Actor):
    """
    Which tickets an actor sees in listings.

    End users see tickets they requested, support staff see their own and
    unassigned tickets, managers and admins see everything.
    """
    if actor.role == Role.END_USER:
        return TicketModel.requester_id == actor.id
    if actor.role == Role.SUPPORT_STAFF:
        return or_(
            TicketModel.assigned_to_id == actor.id,
            TicketModel.assigned_to_id.is_(None),
        )
    return None


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """Commits/rolls back the request session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException("Failed to commit transaction", {"error": str(e)}) from e

    async def rollback(self) -> None:
        await self._session.rollback()


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Updates go through a version-checked UPDATE so concurrent writers to the
    same ticket cannot silently overwrite each other.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by internal ID."""
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = select(TicketModel).where(TicketModel.id == ticket_uuid)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_ticket(model) if model else None

    async def add(self, ticket: Ticket) -> Ticket:
        """Create new ticket."""
        model = TicketModel(
            id=parse_uuid(ticket.id),
            ticket_number=ticket.ticket_number,
            requester_id=ticket.requester_id,
            created_at=ticket.created_at,
            version=ticket.version,
            **ticket_columns(ticket),
        )
        self._session.add(model)
        await self._session.flush()
        return to_ticket(model)

    async def save(self, ticket: Ticket, expected_version: int) -> Ticket:
        """Persist changes if the row still has ``expected_version``."""
        new_version = expected_version + 1
        stmt = (
            update(TicketModel)
            .where(
                and_(
                    TicketModel.id == parse_uuid(ticket.id),
                    TicketModel.version == expected_version,
                )
            )
            .values(version=new_version, **ticket_columns(ticket))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            raise ConflictException(
                "Ticket was modified by someone else; reload and retry",
                {"ticket_id": ticket.id, "expected_version": expected_version}
            )

        refreshed = await self._session.get(
            TicketModel, parse_uuid(ticket.id), populate_existing=True
        )
        return to_ticket(refreshed)

    async def search(
        self,
        ticket_filter: TicketFilter,
        actor: Optional[Actor] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """Tickets matching a filter within the actor's listing scope."""
        conditions = [build_ticket_predicate(ticket_filter)]
        if actor is not None:
            scope = listing_scope(actor)
            if scope is not None:
                conditions.append(scope)
        where = and_(*conditions)

        count_stmt = select(func.count()).select_from(TicketModel).where(where)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = (
            select(TicketModel)
            .where(where)
            .order_by(TicketModel.updated_at.desc(), TicketModel.ticket_number.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return [to_ticket(model) for model in result.scalars().all()], total

    async def find_breached(
        self,
        now: datetime,
        since: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0
    ) -> List[Ticket]:
        """Open tickets past due; with ``since``, only those that fell due after it."""
        conditions = [
            TicketModel.due_date.is_not(None),
            TicketModel.due_date < now,
            TicketModel.status.not_in(TERMINAL_VALUES),
        ]
        if since is not None:
            conditions.append(TicketModel.due_date >= since)

        stmt = (
            select(TicketModel)
            .where(and_(*conditions))
            .order_by(TicketModel.due_date.asc(), TicketModel.id.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [to_ticket(model) for model in result.scalars().all()]


class SQLAlchemyHistoryRepository(IHistoryRepository):
    """Append-only audit trail with a per-ticket monotonic sequence."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, entries: Sequence[HistoryEntry]) -> List[HistoryEntry]:
        next_sequence: Dict[str, int] = {}
        stored = []

        for entry in entries:
            if entry.ticket_id not in next_sequence:
                stmt = select(func.coalesce(func.max(TicketHistoryModel.sequence), 0)).where(
                    TicketHistoryModel.ticket_id == parse_uuid(entry.ticket_id)
                )
                next_sequence[entry.ticket_id] = (await self._session.execute(stmt)).scalar_one()

            next_sequence[entry.ticket_id] += 1
            model = TicketHistoryModel(
                ticket_id=parse_uuid(entry.ticket_id),
                sequence=next_sequence[entry.ticket_id],
                field=entry.field,
                old_value=entry.old_value,
                new_value=entry.new_value,
                changed_by=entry.changed_by,
                changed_at=entry.changed_at,
            )
            self._session.add(model)
            stored.append(model)

        await self._session.flush()
        return [to_history(model) for model in stored]

    async def list_for_ticket(self, ticket_id: str) -> List[HistoryEntry]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []
        stmt = (
            select(TicketHistoryModel)
            .where(TicketHistoryModel.ticket_id == ticket_uuid)
            .order_by(TicketHistoryModel.sequence.desc())
        )
        result = await self._session.execute(stmt)
        return [to_history(model) for model in result.scalars().all()]


class SQLAlchemyTicketNumberSequence(ITicketNumberSequence):
    """
    Per-year counter row bumped with INSERT .. ON CONFLICT DO UPDATE .. RETURNING.

    The upsert is a single statement, so concurrent creators each get a
    distinct value and the counter survives restarts.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def next_value(self, year: int) -> int:
        dialect = self._session.bind.dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert

        stmt = insert(TicketSequenceModel).values(year=year, last_value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TicketSequenceModel.year],
            set_={"last_value": TicketSequenceModel.last_value + 1},
        ).returning(TicketSequenceModel.last_value)

        result = await self._session.execute(stmt)
        return result.scalar_one()


class SQLAlchemyUserDirectory(IUserDirectory):
    """Local user directory table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, user_id: str) -> Optional[DirectoryUser]:
        model = await self._session.get(UserModel, user_id)
        return to_user(model) if model else None

    async def get_many(self, user_ids: Sequence[str]) -> Dict[str, DirectoryUser]:
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        stmt = select(UserModel).where(UserModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {model.id: to_user(model) for model in result.scalars().all()}

    async def list_team(self) -> List[DirectoryUser]:
        stmt = (
            select(UserModel)
            .where(
                and_(
                    UserModel.is_active.is_(True),
                    UserModel.role.in_([role.value for role in TEAM_ROLES]),
                )
            )
            .order_by(UserModel.name.asc())
        )
        result = await self._session.execute(stmt)
        return [to_user(model) for model in result.scalars().all()]

    async def upsert(self, user: DirectoryUser) -> DirectoryUser:
        model = await self._session.get(UserModel, user.id)
        if model is None:
            model = UserModel(id=user.id)
            self._session.add(model)
        model.name = user.name
        model.email = user.email
        model.role = user.role.value
        model.is_active = user.is_active
        await self._session.flush()
        return to_user(model)


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, comment_id: str) -> Optional[CommentModel]:
        comment_uuid = parse_uuid(comment_id)
        if comment_uuid is None:
            return None
        return await self._session.get(CommentModel, comment_uuid)

    async def get_by_id(self, comment_id: str) -> Optional[Comment]:
        model = await self._get_model(comment_id)
        return to_comment(model) if model else None

    async def add(self, comment: Comment) -> Comment:
        model = CommentModel(
            id=parse_uuid(comment.id),
            ticket_id=parse_uuid(comment.ticket_id),
            author_id=comment.author_id,
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        return to_comment(model)

    async def update(self, comment: Comment) -> Comment:
        model = await self._get_model(comment.id)
        if model is None:
            raise RepositoryException(f"Comment {comment.id} not found")
        model.content = comment.content
        model.is_internal = comment.is_internal
        model.updated_at = comment.updated_at
        await self._session.flush()
        return to_comment(model)

    async def delete(self, comment_id: str) -> None:
        await self._session.execute(
            delete(CommentModel).where(CommentModel.id == parse_uuid(comment_id))
        )

    async def list_for_ticket(self, ticket_id: str) -> List[Comment]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []
        stmt = (
            select(CommentModel)
            .where(CommentModel.ticket_id == ticket_uuid)
            .order_by(CommentModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [to_comment(model) for model in result.scalars().all()]


class SQLAlchemyAttachmentRepository(IAttachmentRepository):
    """SQLAlchemy implementation of attachment metadata repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, attachment_id: str) -> Optional[Attachment]:
        attachment_uuid = parse_uuid(attachment_id)
        if attachment_uuid is None:
            return None
        model = await self._session.get(AttachmentModel, attachment_uuid)
        return to_attachment(model) if model else None

    async def add(self, attachment: Attachment) -> Attachment:
        model = AttachmentModel(
            id=parse_uuid(attachment.id),
            ticket_id=parse_uuid(attachment.ticket_id),
            filename=attachment.filename,
            size=attachment.size,
            mime_type=attachment.mime_type,
            storage_key=attachment.storage_key,
            uploaded_by=attachment.uploaded_by,
            created_at=attachment.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return to_attachment(model)

    async def delete(self, attachment_id: str) -> None:
        await self._session.execute(
            delete(AttachmentModel).where(AttachmentModel.id == parse_uuid(attachment_id))
        )

    async def list_for_ticket(self, ticket_id: str) -> List[Attachment]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []
        stmt = (
            select(AttachmentModel)
            .where(AttachmentModel.ticket_id == ticket_uuid)
            .order_by(AttachmentModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [to_attachment(model) for model in result.scalars().all()]
