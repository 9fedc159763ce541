"""
SLA Controllers (API Routes)
============================

FastAPI routes for SLA targets, classification suggestions and live
breaches.

Controllers are thin - they delegate to application services.
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Query

from src.config import Impact, ServiceLevel, Urgency
from src.shared.api.dependencies import get_current_actor
from src.shared.domain import Actor
from src.sla.application import SLAPolicyService
from src.sla.application.dto import ClassificationSuggestion, SLATargetResponse
from src.sla.domain import SLAConfig
from src.sla.infrastructure.config import get_sla_config
from src.tickets.application import TicketService
from src.tickets.application.dto import TicketResponse
from src.tickets.interfaces.controllers import get_ticket_service

sla_router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Dependencies ==========

def get_policy_service(sla_config: SLAConfig = Depends(get_sla_config)) -> SLAPolicyService:
    """Get SLA policy service bound to the active configuration."""
    return SLAPolicyService(sla_config)


# ========== Route Handlers ==========

@sla_router.get(
    "/targets",
    response_model=List[SLATargetResponse],
    summary="Active SLA targets",
    description="""
    Response and resolution targets per service level, in hours.

    Values come from `sla_config.yaml` and follow edits to that file
    without a restart. Levels missing from the file use the defaults:

    | Service level | Response | Resolution |
    |---|---|---|
    | STANDARD | 8 | 40 |
    | PREMIUM | 4 | 16 |
    | CRITICAL_SUPPORT | 0 | 4 |
    """,
)
async def list_targets(
    actor: Actor = Depends(get_current_actor),
    service: SLAPolicyService = Depends(get_policy_service),
):
    return [
        SLATargetResponse.from_target(level, target)
        for level, target in service.targets().items()
    ]


@sla_router.get("/targets/{service_level}", response_model=SLATargetResponse)
async def get_target(
    service_level: ServiceLevel,
    actor: Actor = Depends(get_current_actor),
    service: SLAPolicyService = Depends(get_policy_service),
):
    return SLATargetResponse.from_target(service_level, service.target_for(service_level))


@sla_router.get(
    "/suggest",
    response_model=ClassificationSuggestion,
    summary="Suggest priority and service level",
    description="Derived from the impact/urgency matrix. Nothing is applied to a ticket.",
)
async def suggest_classification(
    impact: Impact = Query(...),
    urgency: Urgency = Query(...),
    actor: Actor = Depends(get_current_actor),
    service: SLAPolicyService = Depends(get_policy_service),
):
    suggestion = service.suggest(impact, urgency)
    return ClassificationSuggestion(
        impact=suggestion["impact"],
        urgency=suggestion["urgency"],
        priority=suggestion["priority"],
        service_level=suggestion["service_level"],
        target=SLATargetResponse.from_target(suggestion["service_level"], suggestion["target"]),
    )


@sla_router.get(
    "/breaches",
    response_model=List[TicketResponse],
    summary="Open tickets past their due date",
    description="Support staff only. Breach is evaluated at request time.",
)
async def list_breaches(
    actor: Actor = Depends(get_current_actor),
    service: TicketService = Depends(get_ticket_service),
):
    tickets = await service.list_breached(actor)
    now = datetime.now(timezone.utc)
    return [TicketResponse.from_entity(ticket, now) for ticket in tickets]
