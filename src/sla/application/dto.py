"""
SLA DTOs
========

Response models for the SLA policy endpoints.
"""

from pydantic import BaseModel, Field

from src.config import Impact, Priority, ServiceLevel, Urgency
from src.sla.domain import SLATarget


class SLATargetResponse(BaseModel):
    service_level: ServiceLevel
    response_hours: float = Field(..., description="Hours allowed until first response")
    resolution_hours: float = Field(..., description="Hours allowed until resolution")

    @classmethod
    def from_target(cls, service_level: ServiceLevel, target: SLATarget) -> "SLATargetResponse":
        return cls(
            service_level=service_level,
            response_hours=target.response_hours,
            resolution_hours=target.resolution_hours,
        )


class ClassificationSuggestion(BaseModel):
    """Advisory priority and service level for an impact/urgency pair."""
    impact: Impact
    urgency: Urgency
    priority: Priority
    service_level: ServiceLevel
    target: SLATargetResponse
