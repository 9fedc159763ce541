"""
Comment & Attachment Services
=============================

Ticket sub-resources. Reading them requires access to the parent ticket;
changing them requires ownership or a manager/admin role.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional
from uuid import uuid4

from src.config import EventType
from src.core import ForbiddenException, ResourceNotFoundException, ValidationException
from src.shared.domain import Actor, IEventPublisher, has_elevated_access
from src.shared.infrastructure.logging import get_logger
from src.tickets.application.services import (
    EventEmitter,
    ITicketRepository,
    IUnitOfWork,
    utcnow,
)
from src.tickets.domain import (
    Attachment,
    Comment,
    Ticket,
    assert_can_access,
    assert_can_mutate,
    visible_comments,
)

logger = get_logger(__name__)

MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10 MiB

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
    "application/zip",
    "application/x-zip-compressed",
})


# ========== Repository Interfaces ==========

class ICommentRepository(ABC):
    """Interface for comment data access."""

    @abstractmethod
    async def get_by_id(self, comment_id: str) -> Optional[Comment]:
        """Get comment by ID."""

    @abstractmethod
    async def add(self, comment: Comment) -> Comment:
        """Insert a comment."""

    @abstractmethod
    async def update(self, comment: Comment) -> Comment:
        """Persist an edited comment."""

    @abstractmethod
    async def delete(self, comment_id: str) -> None:
        """Remove a comment."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Comment]:
        """Comments of a ticket, oldest first."""


class IAttachmentRepository(ABC):
    """Interface for attachment metadata access."""

    @abstractmethod
    async def get_by_id(self, attachment_id: str) -> Optional[Attachment]:
        """Get attachment by ID."""

    @abstractmethod
    async def add(self, attachment: Attachment) -> Attachment:
        """Insert attachment metadata."""

    @abstractmethod
    async def delete(self, attachment_id: str) -> None:
        """Remove attachment metadata."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Attachment]:
        """Attachments of a ticket, oldest first."""


# ========== Shared helpers ==========

async def load_accessible_ticket(
    tickets: ITicketRepository, ticket_id: str, actor: Actor
) -> Ticket:
    ticket = await tickets.get_by_id(ticket_id)
    if ticket is None:
        raise ResourceNotFoundException("Ticket", ticket_id)
    assert_can_access(ticket, actor.id, actor.role)
    return ticket


def comment_recipient(ticket: Ticket, author_id: str, is_internal: bool) -> Optional[str]:
    """The other party of the conversation (requester <-> assignee)."""
    if author_id == ticket.requester_id:
        return ticket.assigned_to_id
    if is_internal:
        # Requesters never hear about internal notes
        return ticket.assigned_to_id if ticket.assigned_to_id != author_id else None
    return ticket.requester_id


# ========== Services ==========

class CommentService:
    """Comments with internal-note projection for requesters."""

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        comment_repository: ICommentRepository,
        unit_of_work: IUnitOfWork,
        publisher: IEventPublisher,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._tickets = ticket_repository
        self._comments = comment_repository
        self._uow = unit_of_work
        self._events = EventEmitter(publisher)
        self._clock = clock

    async def create_comment(
        self,
        ticket_id: str,
        content: str,
        actor: Actor,
        is_internal: bool = False,
    ) -> Comment:
        """
        Add a comment to a ticket.

        The first public reply by someone other than the requester counts as
        the ticket's first response.
        """
        ticket = await load_accessible_ticket(self._tickets, ticket_id, actor)

        if is_internal and not has_elevated_access(actor.role):
            raise ForbiddenException("Only support staff can post internal comments")
        if not content or not content.strip():
            raise ValidationException("Comment content cannot be empty", {"field": "content"})

        now = self._clock()
        comment = Comment(
            id=str(uuid4()),
            ticket_id=ticket.id,
            author_id=actor.id,
            content=content,
            is_internal=is_internal,
            created_at=now,
            updated_at=now,
        )

        try:
            comment = await self._comments.add(comment)
            if (
                not is_internal
                and ticket.first_response_at is None
                and actor.id != ticket.requester_id
            ):
                await self._tickets.save(
                    replace(ticket, first_response_at=now, updated_at=now),
                    expected_version=ticket.version,
                )
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        await self._events.emit(
            EventType.COMMENT_CREATED, ticket.id, actor.id, now,
            {
                "comment_id": comment.id,
                "ticket_number": ticket.ticket_number,
                "is_internal": is_internal,
                "recipient_id": comment_recipient(ticket, actor.id, is_internal),
            }
        )
        return comment

    async def list_comments(self, ticket_id: str, actor: Actor) -> List[Comment]:
        """Comments in posting order; requesters never see internal ones."""
        await load_accessible_ticket(self._tickets, ticket_id, actor)
        comments = await self._comments.list_for_ticket(ticket_id)
        return visible_comments(comments, actor.role)

    async def get_comment(self, comment_id: str, actor: Actor) -> Comment:
        comment = await self._comments.get_by_id(comment_id)
        if comment is None:
            raise ResourceNotFoundException("Comment", comment_id)
        await load_accessible_ticket(self._tickets, comment.ticket_id, actor)
        if not visible_comments([comment], actor.role):
            raise ResourceNotFoundException("Comment", comment_id)
        return comment

    async def update_comment(
        self,
        comment_id: str,
        actor: Actor,
        content: Optional[str] = None,
        is_internal: Optional[bool] = None,
    ) -> Comment:
        comment = await self.get_comment(comment_id, actor)
        assert_can_mutate(comment, actor.id, actor.role, "comments")

        if is_internal and not has_elevated_access(actor.role):
            raise ForbiddenException("Only support staff can post internal comments")
        if content is not None and not content.strip():
            raise ValidationException("Comment content cannot be empty", {"field": "content"})

        updated = replace(
            comment,
            content=content if content is not None else comment.content,
            is_internal=is_internal if is_internal is not None else comment.is_internal,
            updated_at=self._clock(),
        )
        try:
            updated = await self._comments.update(updated)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise
        return updated

    async def delete_comment(self, comment_id: str, actor: Actor) -> None:
        comment = await self.get_comment(comment_id, actor)
        assert_can_mutate(comment, actor.id, actor.role, "comments")
        try:
            await self._comments.delete(comment_id)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise
        logger.info("Comment deleted", extra={"comment_id": comment_id, "actor_id": actor.id})


class AttachmentService:
    """Attachment metadata. Bytes are stored and scanned elsewhere."""

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        attachment_repository: IAttachmentRepository,
        unit_of_work: IUnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._tickets = ticket_repository
        self._attachments = attachment_repository
        self._uow = unit_of_work
        self._clock = clock

    async def register_attachment(
        self,
        ticket_id: str,
        filename: str,
        size: int,
        mime_type: str,
        storage_key: str,
        actor: Actor,
    ) -> Attachment:
        """
        Record an uploaded file against a ticket.

        Raises:
            ValidationException: File too large or type not allowed
        """
        ticket = await load_accessible_ticket(self._tickets, ticket_id, actor)

        if size > MAX_ATTACHMENT_SIZE:
            raise ValidationException(
                "File size exceeds 10MB limit",
                {"size": size, "max_size": MAX_ATTACHMENT_SIZE}
            )
        mime_type = mime_type.lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationException(
                f"File type {mime_type} not allowed",
                {"mime_type": mime_type}
            )

        attachment = Attachment(
            id=str(uuid4()),
            ticket_id=ticket.id,
            filename=filename,
            size=size,
            mime_type=mime_type,
            storage_key=storage_key,
            uploaded_by=actor.id,
            created_at=self._clock(),
        )
        try:
            attachment = await self._attachments.add(attachment)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise
        return attachment

    async def list_attachments(self, ticket_id: str, actor: Actor) -> List[Attachment]:
        await load_accessible_ticket(self._tickets, ticket_id, actor)
        return await self._attachments.list_for_ticket(ticket_id)

    async def get_attachment(self, attachment_id: str, actor: Actor) -> Attachment:
        attachment = await self._attachments.get_by_id(attachment_id)
        if attachment is None:
            raise ResourceNotFoundException("Attachment", attachment_id)
        await load_accessible_ticket(self._tickets, attachment.ticket_id, actor)
        return attachment

    async def delete_attachment(self, attachment_id: str, actor: Actor) -> None:
        attachment = await self.get_attachment(attachment_id, actor)
        assert_can_mutate(attachment, actor.id, actor.role, "attachments")
        try:
            await self._attachments.delete(attachment_id)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise
