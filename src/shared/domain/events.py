"""
Domain Events
=============

Envelope for state changes handed to the notification collaborator, and the
publisher port it is delivered through.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from src.config import EventType


@dataclass(frozen=True)
class DomainEvent:
    """One committed state change. Published once, after commit."""
    type: EventType
    ticket_id: str
    actor_id: Optional[str]
    timestamp: datetime
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "ticket_id": self.ticket_id,
            "actor_id": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


class IEventPublisher(ABC):
    """
    Outbound port for domain events.

    Implementations must not raise into the caller: by the time an event is
    published the change is already committed.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Hand an event to the delivery mechanism."""
        pass

    async def close(self) -> None:
        """Release delivery resources."""
        return None
