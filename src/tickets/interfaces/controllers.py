"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for tickets, comments, attachments and the user directory.

Controllers are thin - they delegate to application services.
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import get_session
from src.reports.domain.filters import TicketFilter
from src.reports.interfaces.params import ticket_filter_params
from src.shared.api.dependencies import get_current_actor
from src.shared.domain import Actor, IEventPublisher
from src.shared.infrastructure.notifications import get_event_publisher
from src.sla.domain import SLAConfig
from src.sla.infrastructure.config import get_sla_config
from src.tickets.application import (
    AttachmentService,
    CommentService,
    TicketService,
    UserDirectoryService,
)
from src.tickets.application.dto import (
    AssignRequest,
    AttachmentCreateRequest,
    AttachmentResponse,
    CommentCreateRequest,
    CommentResponse,
    CommentUpdateRequest,
    HistoryEntryResponse,
    StatusChangeRequest,
    TicketCreateRequest,
    TicketListResponse,
    TicketResponse,
    TicketUpdateRequest,
    UserResponse,
    UserUpsertRequest,
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

tickets_router = APIRouter(prefix="/tickets", tags=["Tickets"])
comments_router = APIRouter(prefix="/comments", tags=["Comments"])
attachments_router = APIRouter(prefix="/attachments", tags=["Attachments"])
directory_router = APIRouter(prefix="/directory", tags=["User Directory"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Dependencies ==========

async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    publisher: IEventPublisher = Depends(get_event_publisher),
    sla_config: SLAConfig = Depends(get_sla_config),
) -> TicketService:
    """Get ticket service instance."""
    return TicketService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyHistoryRepository(session),
        SQLAlchemyTicketNumberSequence(session),
        SQLAlchemyUserDirectory(session),
        SQLAlchemyUnitOfWork(session),
        publisher,
        sla_config=sla_config,
    )


async def get_comment_service(
    session: AsyncSession = Depends(get_session),
    publisher: IEventPublisher = Depends(get_event_publisher),
) -> CommentService:
    """Get comment service instance."""
    return CommentService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyCommentRepository(session),
        SQLAlchemyUnitOfWork(session),
        publisher,
    )


async def get_attachment_service(
    session: AsyncSession = Depends(get_session),
) -> AttachmentService:
    """Get attachment service instance."""
    return AttachmentService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyAttachmentRepository(session),
        SQLAlchemyUnitOfWork(session),
    )


async def get_directory_service(
    session: AsyncSession = Depends(get_session),
) -> UserDirectoryService:
    return UserDirectoryService(
        SQLAlchemyUserDirectory(session),
        SQLAlchemyUnitOfWork(session),
    )


# ========== Tickets ==========

@tickets_router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
    description="""
    Open a new support ticket for the calling user.

    Unspecified classification defaults to priority `MEDIUM`, impact
    `MODERATE`, urgency `NORMAL` and service level `STANDARD`. The due date
    is derived from the service level's resolution target.
    """,
)
async def create_ticket(
    request: TicketCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.create_ticket(request, actor)
    return TicketResponse.from_entity(ticket, _now())


@tickets_router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="""
    Role-scoped ticket listing, most recently updated first.

    - `END_USER`: tickets they requested
    - `SUPPORT_STAFF`: tickets assigned to them and unassigned tickets
    - `SUPPORT_MANAGER` / `ADMIN`: all tickets
    """,
)
async def list_tickets(
    ticket_filter: TicketFilter = Depends(ticket_filter_params),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    tickets, total = await service.list_tickets(actor, ticket_filter, page, limit)
    now = _now()
    return TicketListResponse(
        items=[TicketResponse.from_entity(ticket, now) for ticket in tickets],
        total=total,
        page=page,
        limit=limit,
    )


@tickets_router.get("/{ticket_id}", response_model=TicketResponse, summary="Get a ticket")
async def get_ticket(
    ticket_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.get_ticket(ticket_id, actor)
    return TicketResponse.from_entity(ticket, _now())


@tickets_router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update ticket fields",
    description="Only support staff may change `priority` or `service_level`.",
)
async def update_ticket(
    ticket_id: str,
    request: TicketUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.update_fields(ticket_id, request.changes(), actor)
    return TicketResponse.from_entity(ticket, _now())


@tickets_router.post(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
    description="""
    Allowed transitions:

    | From | To |
    |---|---|
    | NEW | OPEN, IN_PROGRESS, RESOLVED, CLOSED |
    | OPEN | IN_PROGRESS, RESOLVED, CLOSED |
    | IN_PROGRESS | OPEN, RESOLVED, CLOSED |
    | RESOLVED | CLOSED, OPEN |
    | CLOSED | OPEN |

    `REOPENED` re-opens a resolved or closed ticket. Resolving requires a
    `resolution`. Other transitions answer 409.
    """,
)
async def change_status(
    ticket_id: str,
    request: StatusChangeRequest,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.change_status(ticket_id, request.status, actor, request.resolution)
    return TicketResponse.from_entity(ticket, _now())


@tickets_router.post("/{ticket_id}/assign", response_model=TicketResponse, summary="Assign a ticket")
async def assign_ticket(
    ticket_id: str,
    request: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.assign(ticket_id, request.assignee_id, actor)
    return TicketResponse.from_entity(ticket, _now())


@tickets_router.get(
    "/{ticket_id}/history",
    response_model=List[HistoryEntryResponse],
    summary="Ticket audit trail (newest first)",
)
async def get_history(
    ticket_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    entries = await service.get_history(ticket_id, actor)
    return [HistoryEntryResponse.from_entity(entry) for entry in entries]


# ========== Comments ==========

@tickets_router.post(
    "/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a ticket",
)
async def create_comment(
    ticket_id: str,
    request: CommentCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.create_comment(ticket_id, request.content, actor, request.is_internal)
    return CommentResponse.from_entity(comment)


@tickets_router.get(
    "/{ticket_id}/comments",
    response_model=List[CommentResponse],
    summary="List ticket comments",
    description="Internal comments are omitted for requesters.",
)
async def list_comments(
    ticket_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    comments = await service.list_comments(ticket_id, actor)
    return [CommentResponse.from_entity(comment) for comment in comments]


@comments_router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(
    comment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    return CommentResponse.from_entity(await service.get_comment(comment_id, actor))


@comments_router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    request: CommentUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.update_comment(
        comment_id, actor, content=request.content, is_internal=request.is_internal
    )
    return CommentResponse.from_entity(comment)


@comments_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(comment_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Attachments ==========

@tickets_router.post(
    "/{ticket_id}/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register attachment metadata",
    description="The file must already be in the file store; `storage_key` is opaque. Max 10MB.",
)
async def register_attachment(
    ticket_id: str,
    request: AttachmentCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: AttachmentService = Depends(get_attachment_service),
):
    attachment = await service.register_attachment(
        ticket_id,
        request.filename,
        request.size,
        request.mime_type,
        request.storage_key,
        actor,
    )
    return AttachmentResponse.from_entity(attachment)


@tickets_router.get("/{ticket_id}/attachments", response_model=List[AttachmentResponse])
async def list_attachments(
    ticket_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AttachmentService = Depends(get_attachment_service),
):
    attachments = await service.list_attachments(ticket_id, actor)
    return [AttachmentResponse.from_entity(attachment) for attachment in attachments]


@attachments_router.get("/{attachment_id}", response_model=AttachmentResponse)
async def get_attachment(
    attachment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AttachmentService = Depends(get_attachment_service),
):
    return AttachmentResponse.from_entity(await service.get_attachment(attachment_id, actor))


@attachments_router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AttachmentService = Depends(get_attachment_service),
):
    await service.delete_attachment(attachment_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== User directory ==========

@directory_router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Sync a user from the identity provider (admin)",
)
async def upsert_user(
    user_id: str,
    request: UserUpsertRequest,
    actor: Actor = Depends(get_current_actor),
    service: UserDirectoryService = Depends(get_directory_service),
):
    user = DirectoryUser(
        id=user_id,
        name=request.name,
        email=request.email,
        role=request.role,
        is_active=request.is_active,
    )
    return UserResponse.from_entity(await service.upsert_user(user, actor))


@directory_router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    actor: Actor = Depends(get_current_actor),
    service: UserDirectoryService = Depends(get_directory_service),
):
    return UserResponse.from_entity(await service.get_user(user_id))


ticket_router = APIRouter()
ticket_router.include_router(tickets_router)
ticket_router.include_router(comments_router)
ticket_router.include_router(attachments_router)
ticket_router.include_router(directory_router)
