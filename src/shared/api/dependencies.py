"""
Shared API Dependencies
=======================

Resolves the authenticated actor for each request.

Authentication happens upstream (API gateway / identity provider); the
gateway forwards the verified identity in ``X-User-Id`` and ``X-User-Role``.
"""

from fastapi import Header, HTTPException, status

from src.config import Role
from src.shared.domain import Actor


async def get_current_actor(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Actor:
    """Build the request actor from trusted gateway headers."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity headers"
        )

    try:
        role = Role(x_user_role.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role '{x_user_role}'"
        )

    return Actor(id=x_user_id.strip(), role=role)
