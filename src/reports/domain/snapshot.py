"""
Report Snapshot Value Objects
=============================

Ephemeral report outputs. Recomputed on every request, never persisted.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.reports.domain.filters import TicketFilter


class TicketCounts(BaseModel):
    """Base counts over the filtered tickets."""
    total: int = 0
    pending: int = 0
    new: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0
    overdue: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)


class CountBreakdown(BaseModel):
    """Count and share of total for one category or priority."""
    key: str
    count: int
    percentage: int


class ResolutionTrendPoint(BaseModel):
    """Average resolution time of tickets created in one month."""
    month: str = Field(description="YYYY-MM of ticket creation")
    label: str = Field(description="Short month name")
    average_days: float
    target_days: float
    tickets: int


class TicketTrendPoint(BaseModel):
    """Tickets created in one month and how many of them are resolved/closed."""
    month: str
    label: str
    tickets: int
    resolved: int


class TeamPerformanceRow(BaseModel):
    """Workload and SLA record of one support team member."""
    user_id: str
    name: str
    role: str
    assigned: int
    resolved: int
    average_resolution_days: float
    sla_compliance: int


class SLAMetrics(BaseModel):
    """Compliance percentages; 100 when nothing qualifies."""
    response_time_compliance: int = 100
    resolution_time_compliance: int = 100
    responses_evaluated: int = 0
    resolutions_evaluated: int = 0


class ReportSnapshot(BaseModel):
    """Full ticket report for one filter and point in time."""
    generated_at: datetime
    filter: TicketFilter
    counts: TicketCounts
    by_category: List[CountBreakdown]
    by_priority: List[CountBreakdown]
    resolution_trend: List[ResolutionTrendPoint]
    ticket_trend: List[TicketTrendPoint]
    team_performance: List[TeamPerformanceRow]
    sla_metrics: SLAMetrics


class SLAReport(BaseModel):
    """Compliance summary: share of filtered tickets not overdue."""
    generated_at: datetime
    filter: TicketFilter
    total: int
    compliance: int
    violations: int
    sla_metrics: SLAMetrics


class ExportRow(BaseModel):
    """One denormalized ticket row for spreadsheet export."""
    ticket_number: str
    title: str
    status: str
    priority: str
    requester: str
    assigned_to: str
    category: str
    subcategory: Optional[str]
    created_at: datetime
    updated_at: datetime
