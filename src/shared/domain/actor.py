"""
Actor Identity
==============

The authenticated caller of every lifecycle, access-control and reporting
operation, plus the role capability checks derived from it.
"""

from dataclasses import dataclass

from src.config import Role, ELEVATED_ROLES, MODERATOR_ROLES


def has_elevated_access(role: Role) -> bool:
    """Support staff, managers and admins see and work on any ticket."""
    return Role(role) in ELEVATED_ROLES


def can_moderate(role: Role) -> bool:
    """Managers and admins may edit or delete other people's content."""
    return Role(role) in MODERATOR_ROLES


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller identity."""
    id: str
    role: Role

    @property
    def is_elevated(self) -> bool:
        return has_elevated_access(self.role)
