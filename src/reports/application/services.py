"""
Report Application Services
===========================

Builds report snapshots from the filtered ticket corpus.

End users only ever report on tickets they requested; support roles may
report on anything.
"""

import csv
import io
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from src.config import settings
from src.reports.domain import (
    ExportRow,
    ReportSnapshot,
    SLAReport,
    TicketFilter,
)
from src.reports.domain import aggregations
from src.shared.domain import Actor
from src.shared.infrastructure.logging import get_logger, log_latency
from src.sla.domain import SLAConfig
from src.tickets.application.services import IUserDirectory, utcnow
from src.tickets.domain import Ticket

logger = get_logger(__name__)

EXPORT_COLUMNS = (
    "ticket_number", "title", "status", "priority", "requester",
    "assigned_to", "category", "subcategory", "created_at", "updated_at",
)


class IReportRepository(ABC):
    """Interface for reporting reads."""

    @abstractmethod
    async def find_tickets(self, ticket_filter: TicketFilter) -> List[Ticket]:
        """All tickets matching the filter, newest first."""


class ReportService:
    """
    Service for operational reports.

    All figures are derived on request; nothing is cached.
    """

    def __init__(
        self,
        report_repository: IReportRepository,
        user_directory: IUserDirectory,
        sla_config: Optional[SLAConfig] = None,
        clock: Callable[[], datetime] = utcnow,
        trend_months: Optional[int] = None,
        window_days: Optional[int] = None,
        resolution_target_days: Optional[float] = None,
    ):
        self._reports = report_repository
        self._directory = user_directory
        self._sla_config = sla_config or SLAConfig()
        self._clock = clock
        self._trend_months = trend_months or settings.report_trend_months
        self._window_days = window_days or settings.report_window_days
        self._target_days = (
            resolution_target_days
            if resolution_target_days is not None
            else settings.report_resolution_target_days
        )

    async def build_ticket_report(
        self,
        ticket_filter: TicketFilter,
        actor: Actor,
    ) -> ReportSnapshot:
        """Counts, breakdowns, trends, team performance and SLA metrics."""
        scoped = ticket_filter.scoped_to(actor)
        now = self._clock()
        tickets = await self._reports.find_tickets(scoped)
        members = await self._directory.list_team() if actor.is_elevated else []

        with log_latency(logger, "ticket_report", tickets=len(tickets), actor_id=actor.id):
            return ReportSnapshot(
                generated_at=now,
                filter=scoped,
                counts=aggregations.count_tickets(tickets, now),
                by_category=aggregations.category_breakdown(tickets),
                by_priority=aggregations.priority_breakdown(tickets),
                resolution_trend=aggregations.resolution_trend(
                    tickets, now, self._trend_months, self._target_days
                ),
                ticket_trend=aggregations.ticket_trend(tickets, now, self._trend_months),
                team_performance=aggregations.team_performance(
                    members, tickets, now, self._window_days
                ),
                sla_metrics=aggregations.sla_metrics(
                    tickets, now, self._window_days, self._sla_config
                ),
            )

    async def export_ticket_report(
        self,
        ticket_filter: TicketFilter,
        actor: Actor,
    ) -> List[ExportRow]:
        """Flat rows, newest created first."""
        tickets = await self._reports.find_tickets(ticket_filter.scoped_to(actor))
        user_ids = {t.requester_id for t in tickets} | {t.assigned_to_id for t in tickets if t.assigned_to_id}
        users = await self._directory.get_many(sorted(user_ids))
        rows = aggregations.export_rows(tickets, users)
        logger.info("Ticket export built", extra={"rows": len(rows), "actor_id": actor.id})
        return rows

    async def build_sla_report(
        self,
        ticket_filter: TicketFilter,
        actor: Actor,
    ) -> SLAReport:
        """Share of tickets not overdue, violations and SLA metrics."""
        scoped = ticket_filter.scoped_to(actor)
        now = self._clock()
        tickets = await self._reports.find_tickets(scoped)
        compliance, violations = aggregations.overall_compliance(tickets, now)

        return SLAReport(
            generated_at=now,
            filter=scoped,
            total=len(tickets),
            compliance=compliance,
            violations=violations,
            sla_metrics=aggregations.sla_metrics(
                tickets, now, self._window_days, self._sla_config
            ),
        )


def rows_to_csv(rows: List[ExportRow]) -> str:
    """Render export rows as CSV with a header line."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for row in rows:
        data = row.model_dump()
        writer.writerow([
            data[column].isoformat() if isinstance(data[column], datetime)
            else ("" if data[column] is None else data[column])
            for column in EXPORT_COLUMNS
        ])
    return buffer.getvalue()
