"""
Ticket Access Control
=====================

Who may read a ticket and its sub-resources, and who may change them.
"""

from typing import Iterable, List, Optional, Protocol

from src.config import Role
from src.core import ForbiddenException
from src.shared.domain import can_moderate, has_elevated_access
from src.tickets.domain.entities import Comment, Ticket


class OwnedResource(Protocol):
    id: str

    @property
    def owner_id(self) -> str: ...


def can_access(ticket: Ticket, actor_id: str, actor_role: Role) -> bool:
    return has_elevated_access(actor_role) or ticket.is_visible_to(actor_id)


def assert_can_access(ticket: Ticket, actor_id: str, actor_role: Role) -> None:
    """
    Raises:
        ForbiddenException: Unless the actor is the requester, the assignee
            or holds an elevated role
    """
    if not can_access(ticket, actor_id, actor_role):
        raise ForbiddenException(
            "You do not have access to this ticket",
            {"ticket_id": ticket.id}
        )


def assert_can_mutate(
    resource: OwnedResource,
    actor_id: str,
    actor_role: Role,
    resource_type: Optional[str] = None,
) -> None:
    """
    Only the resource owner or a manager/admin may edit or delete it.
    Support staff cannot change other people's comments.

    Raises:
        ForbiddenException: Otherwise
    """
    if resource.owner_id == actor_id or can_moderate(actor_role):
        return
    name = resource_type or type(resource).__name__.lower()
    raise ForbiddenException(
        f"You can only modify your own {name}",
        {"resource_id": resource.id}
    )


def visible_comments(comments: Iterable[Comment], actor_role: Role) -> List[Comment]:
    """Drop internal comments for actors without an elevated role."""
    if has_elevated_access(actor_role):
        return list(comments)
    return [comment for comment in comments if not comment.is_internal]
