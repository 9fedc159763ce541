"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from src.config import (
    Impact, Priority, ServiceLevel, TicketStatus, Urgency,
    TERMINAL_STATUSES,
)


@dataclass(frozen=True)
class SLATarget:
    """Response and resolution targets for one service level, in hours."""
    response_hours: float
    resolution_hours: float


DEFAULT_SLA_TARGETS: Dict[ServiceLevel, SLATarget] = {
    ServiceLevel.STANDARD: SLATarget(response_hours=8, resolution_hours=40),
    ServiceLevel.PREMIUM: SLATarget(response_hours=4, resolution_hours=16),
    ServiceLevel.CRITICAL_SUPPORT: SLATarget(response_hours=0, resolution_hours=4),
}


# Rows are impact, columns are urgency (LOW, NORMAL, HIGH, IMMEDIATE)
PRIORITY_MATRIX: Dict[Impact, Dict[Urgency, Priority]] = {
    Impact.MINOR: {
        Urgency.LOW: Priority.LOW,
        Urgency.NORMAL: Priority.LOW,
        Urgency.HIGH: Priority.MEDIUM,
        Urgency.IMMEDIATE: Priority.MEDIUM,
    },
    Impact.MODERATE: {
        Urgency.LOW: Priority.LOW,
        Urgency.NORMAL: Priority.MEDIUM,
        Urgency.HIGH: Priority.HIGH,
        Urgency.IMMEDIATE: Priority.HIGH,
    },
    Impact.MAJOR: {
        Urgency.LOW: Priority.MEDIUM,
        Urgency.NORMAL: Priority.HIGH,
        Urgency.HIGH: Priority.HIGH,
        Urgency.IMMEDIATE: Priority.CRITICAL,
    },
    Impact.CRITICAL: {
        Urgency.LOW: Priority.HIGH,
        Urgency.NORMAL: Priority.HIGH,
        Urgency.HIGH: Priority.CRITICAL,
        Urgency.IMMEDIATE: Priority.CRITICAL,
    },
}


class ServiceLevelTargets(BaseModel):
    """YAML shape of a single service level entry."""
    response_hours: float = Field(ge=0, description="Hours allowed until first response")
    resolution_hours: float = Field(ge=0, description="Hours allowed until resolution")


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    Levels missing from the file fall back to the built-in defaults, so an
    empty file is a valid configuration.
    """
    service_levels: Dict[ServiceLevel, ServiceLevelTargets] = Field(
        default_factory=dict,
        validate_default=True,
        description="SLA targets in hours by service level"
    )

    @field_validator("service_levels")
    @classmethod
    def fill_missing_levels(
        cls, v: Dict[ServiceLevel, ServiceLevelTargets]
    ) -> Dict[ServiceLevel, ServiceLevelTargets]:
        """Fill in defaults for service levels the file does not mention."""
        for level, target in DEFAULT_SLA_TARGETS.items():
            if level not in v:
                v[level] = ServiceLevelTargets(
                    response_hours=target.response_hours,
                    resolution_hours=target.resolution_hours,
                )
        return v

    def get_target(self, service_level: ServiceLevel) -> SLATarget:
        """Targets for a service level as an immutable value."""
        entry = self.service_levels[ServiceLevel(service_level)]
        return SLATarget(
            response_hours=entry.response_hours,
            resolution_hours=entry.resolution_hours,
        )


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    Every function takes ``now`` explicitly so results are reproducible.
    """

    @staticmethod
    def resolve_sla_targets(
        service_level: ServiceLevel,
        config: Optional[SLAConfig] = None
    ) -> SLATarget:
        """Response and resolution targets for a service level."""
        if config is None:
            return DEFAULT_SLA_TARGETS[ServiceLevel(service_level)]
        return config.get_target(service_level)

    @staticmethod
    def compute_due_date(
        created_at: datetime,
        service_level: ServiceLevel,
        config: Optional[SLAConfig] = None
    ) -> datetime:
        """
        Calculate the resolution due date for a ticket.

        Formula: created_at + resolution_hours of the service level.
        Hours are never negative, so the result is never before created_at.
        """
        target = SLACalculator.resolve_sla_targets(service_level, config)
        return created_at + timedelta(hours=target.resolution_hours)

    @staticmethod
    def is_compliant(
        closed_at: Optional[datetime],
        due_date: Optional[datetime]
    ) -> Optional[bool]:
        """
        Resolution compliance of a ticket.

        Returns:
            None while the ticket is still open, otherwise closed_at <= due_date.
            A ticket without a due date is never overdue.
        """
        if closed_at is None:
            return None
        if due_date is None:
            return True
        return closed_at <= due_date

    @staticmethod
    def is_breached(
        status: TicketStatus,
        due_date: Optional[datetime],
        now: datetime
    ) -> bool:
        """An open ticket past its due date. Evaluated live, never stored."""
        if due_date is None or TicketStatus(status) in TERMINAL_STATUSES:
            return False
        return now > due_date

    @staticmethod
    def response_due_at(
        created_at: datetime,
        service_level: ServiceLevel,
        config: Optional[SLAConfig] = None
    ) -> datetime:
        """Latest acceptable first-response time."""
        target = SLACalculator.resolve_sla_targets(service_level, config)
        return created_at + timedelta(hours=target.response_hours)

    @staticmethod
    def is_response_compliant(
        created_at: datetime,
        first_response_at: Optional[datetime],
        service_level: ServiceLevel,
        now: datetime,
        config: Optional[SLAConfig] = None
    ) -> Optional[bool]:
        """
        Response-time compliance of a ticket.

        Returns:
            True/False once the ticket was responded to, False when the
            response deadline passed without a response, None while the
            ticket is still inside its response window.
        """
        deadline = SLACalculator.response_due_at(created_at, service_level, config)
        if first_response_at is not None:
            return first_response_at <= deadline
        if now > deadline:
            return False
        return None

    @staticmethod
    def derive_priority(impact: Impact, urgency: Urgency) -> Priority:
        """Suggested priority from the impact/urgency matrix."""
        return PRIORITY_MATRIX[Impact(impact)][Urgency(urgency)]

    @staticmethod
    def derive_service_level(priority: Priority, impact: Impact) -> ServiceLevel:
        """Suggested service level for a priority/impact pair."""
        priority = Priority(priority)
        impact = Impact(impact)
        if priority == Priority.CRITICAL or impact == Impact.CRITICAL:
            return ServiceLevel.CRITICAL_SUPPORT
        if priority == Priority.HIGH or impact == Impact.MAJOR:
            return ServiceLevel.PREMIUM
        return ServiceLevel.STANDARD
