"""
Report Controllers (API Routes)
===============================

FastAPI routes for ticket and SLA reports.

Controllers are thin - they delegate to application services.
"""

from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import get_session
from src.reports.application import ReportService, rows_to_csv
from src.reports.domain import ExportRow, ReportSnapshot, SLAReport, TicketFilter
from src.reports.infrastructure.repositories import SQLAlchemyReportRepository
from src.reports.interfaces.params import ticket_filter_params
from src.shared.api.dependencies import get_current_actor
from src.shared.domain import Actor
from src.sla.domain import SLAConfig
from src.sla.infrastructure.config import get_sla_config
from src.tickets.infrastructure.repositories import SQLAlchemyUserDirectory

router = APIRouter(prefix="/reports", tags=["Reports"])


async def get_report_service(
    session: AsyncSession = Depends(get_session),
    sla_config: SLAConfig = Depends(get_sla_config),
) -> ReportService:
    """Get report service instance."""
    return ReportService(
        SQLAlchemyReportRepository(session),
        SQLAlchemyUserDirectory(session),
        sla_config=sla_config,
    )


@router.get(
    "/tickets",
    response_model=ReportSnapshot,
    summary="Ticket report",
    description="""
    Counts by status, category and priority, six-month resolution and
    ticket trends, 30-day team performance and SLA compliance.

    **Filters** (all optional, combined with AND; repeat list parameters
    to match any of several values):
    - `date_from`, `date_to`: creation time range, inclusive
    - `requester_id`, `assigned_to_id`
    - `status`, `priority`, `category`

    End users only ever see figures for tickets they requested.
    """,
)
async def ticket_report(
    ticket_filter: TicketFilter = Depends(ticket_filter_params),
    actor: Actor = Depends(get_current_actor),
    service: ReportService = Depends(get_report_service),
):
    return await service.build_ticket_report(ticket_filter, actor)


@router.get(
    "/tickets/export",
    response_model=List[ExportRow],
    summary="Export tickets",
    description="One row per ticket, newest first. `format=csv` returns a CSV download.",
)
async def export_tickets(
    ticket_filter: TicketFilter = Depends(ticket_filter_params),
    format: Literal["json", "csv"] = Query("json"),
    actor: Actor = Depends(get_current_actor),
    service: ReportService = Depends(get_report_service),
):
    rows = await service.export_ticket_report(ticket_filter, actor)
    if format == "csv":
        return Response(
            content=rows_to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="tickets.csv"'},
        )
    return rows


@router.get("/sla", response_model=SLAReport, summary="SLA compliance report")
async def sla_report(
    ticket_filter: TicketFilter = Depends(ticket_filter_params),
    actor: Actor = Depends(get_current_actor),
    service: ReportService = Depends(get_report_service),
):
    return await service.build_sla_report(ticket_filter, actor)


report_router = router
