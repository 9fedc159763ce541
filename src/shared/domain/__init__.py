"""
Shared Domain
=============

Actor identity, role capabilities and the domain event envelope.
"""

from src.shared.domain.actor import Actor, can_moderate, has_elevated_access
from src.shared.domain.events import DomainEvent, IEventPublisher

__all__ = [
    "Actor",
    "can_moderate",
    "has_elevated_access",
    "DomainEvent",
    "IEventPublisher",
]
