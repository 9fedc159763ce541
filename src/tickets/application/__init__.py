"""
Ticket Application Layer
========================

Contains:
- Services: Orchestrate lifecycle rules, access checks and persistence
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.tickets.application.collaboration import (
    ALLOWED_MIME_TYPES,
    MAX_ATTACHMENT_SIZE,
    AttachmentService,
    CommentService,
    IAttachmentRepository,
    ICommentRepository,
)
from src.tickets.application.services import (
    IHistoryRepository,
    ITicketNumberSequence,
    ITicketRepository,
    IUnitOfWork,
    IUserDirectory,
    TicketService,
    UserDirectoryService,
    format_ticket_number,
)

__all__ = [
    # Services
    "AttachmentService",
    "CommentService",
    "TicketService",
    "UserDirectoryService",
    "format_ticket_number",
    "ALLOWED_MIME_TYPES",
    "MAX_ATTACHMENT_SIZE",
    # Repository Interfaces
    "IAttachmentRepository",
    "ICommentRepository",
    "IHistoryRepository",
    "ITicketNumberSequence",
    "ITicketRepository",
    "IUnitOfWork",
    "IUserDirectory",
]
