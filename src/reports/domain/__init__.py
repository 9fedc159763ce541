"""
Reporting Domain Layer
======================

Contains:
- TicketFilter: typed filter criteria
- Snapshot value objects: counts, breakdowns, trends, team and SLA figures
- Aggregations: pure functions from tickets to report figures
"""

from src.reports.domain.filters import TicketFilter
from src.reports.domain.snapshot import (
    CountBreakdown,
    ExportRow,
    ReportSnapshot,
    ResolutionTrendPoint,
    SLAMetrics,
    SLAReport,
    TeamPerformanceRow,
    TicketCounts,
    TicketTrendPoint,
)

__all__ = [
    "TicketFilter",
    "CountBreakdown",
    "ExportRow",
    "ReportSnapshot",
    "ResolutionTrendPoint",
    "SLAMetrics",
    "SLAReport",
    "TeamPerformanceRow",
    "TicketCounts",
    "TicketTrendPoint",
]
