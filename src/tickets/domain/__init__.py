"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket, Comment, Attachment, HistoryEntry, DirectoryUser
- Lifecycle: transition table and the pure ``apply_change`` mutation rules
- Access: visibility and mutation rights on tickets and sub-resources

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.tickets.domain.access import (
    assert_can_access,
    assert_can_mutate,
    can_access,
    visible_comments,
)
from src.tickets.domain.entities import (
    Attachment,
    Comment,
    DirectoryUser,
    HistoryEntry,
    Ticket,
)
from src.tickets.domain.lifecycle import (
    EDITABLE_FIELDS,
    TRACKED_FIELDS,
    TRANSITIONS,
    Assignment,
    FieldChange,
    Mutation,
    StatusChange,
    apply_change,
    is_transition_allowed,
    resolve_transition,
)

__all__ = [
    # Entities
    "Attachment",
    "Comment",
    "DirectoryUser",
    "HistoryEntry",
    "Ticket",
    # Lifecycle
    "EDITABLE_FIELDS",
    "TRACKED_FIELDS",
    "TRANSITIONS",
    "Assignment",
    "FieldChange",
    "Mutation",
    "StatusChange",
    "apply_change",
    "is_transition_allowed",
    "resolve_transition",
    # Access
    "assert_can_access",
    "assert_can_mutate",
    "can_access",
    "visible_comments",
]
