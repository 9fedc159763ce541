"""
Report Aggregations
===================

Pure functions turning a list of tickets into report figures.

Everything takes ``now`` explicitly, so the same corpus and clock always
produce the same snapshot. Empty input yields zero counts and empty series,
never an error.

Rounding is half-up (2.5 -> 3) for percentages and to one decimal for day
averages.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from src.config import (
    TicketCategory, TicketStatus,
    PENDING_STATUSES, STORED_STATUSES, TERMINAL_STATUSES,
)
from src.reports.domain.snapshot import (
    CountBreakdown,
    ExportRow,
    ResolutionTrendPoint,
    SLAMetrics,
    TeamPerformanceRow,
    TicketCounts,
    TicketTrendPoint,
)
from src.sla.domain import SLACalculator, SLAConfig
from src.tickets.domain import DirectoryUser, Ticket

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

CATEGORY_NAMES = {
    TicketCategory.HARDWARE: "Hardware",
    TicketCategory.SOFTWARE: "Software",
    TicketCategory.NETWORK: "Network",
    TicketCategory.ACCESS: "Access",
    TicketCategory.OTHER: "Other",
}

SECONDS_PER_DAY = 86400


# ========== Rounding & percentages ==========

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def share_percentage(count: int, total: int) -> int:
    """Share of total; 0 when there is nothing to share."""
    if total == 0:
        return 0
    return round_half_up(count / total * 100)


def compliance_percentage(compliant: int, evaluated: int) -> int:
    """Compliance rate; 100 when nothing was evaluated."""
    if evaluated == 0:
        return 100
    return round_half_up(compliant / evaluated * 100)


def resolution_days(ticket: Ticket) -> float:
    return (ticket.closed_at - ticket.created_at).total_seconds() / SECONDS_PER_DAY


def is_overdue(ticket: Ticket, now: datetime) -> bool:
    return (
        ticket.due_date is not None
        and ticket.due_date < now
        and ticket.status not in TERMINAL_STATUSES
    )


def is_closed_out(ticket: Ticket) -> bool:
    """Resolved or closed, with a closure time."""
    return ticket.status in TERMINAL_STATUSES and ticket.closed_at is not None


# ========== Time windows ==========

def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def month_label(key: str) -> str:
    return MONTH_LABELS[int(key[5:7]) - 1]


def months_ago(now: datetime, months: int) -> datetime:
    """
    Start of the calendar month ``months`` months before the current one.

    ``months_ago(now, 0)`` is the first instant of the current month.
    """
    index = now.year * 12 + (now.month - 1) - months
    return now.replace(
        year=index // 12, month=index % 12 + 1, day=1,
        hour=0, minute=0, second=0, microsecond=0,
    )


def trend_window_start(now: datetime, months: int) -> datetime:
    """First instant of a window covering ``months`` calendar months up to now."""
    return months_ago(now, months - 1)


def created_since(tickets: Iterable[Ticket], start: datetime) -> List[Ticket]:
    return [ticket for ticket in tickets if ticket.created_at >= start]


# ========== Counts & breakdowns ==========

def count_tickets(tickets: Sequence[Ticket], now: datetime) -> TicketCounts:
    by_status = {status.value: 0 for status in STORED_STATUSES}
    overdue = 0
    for ticket in tickets:
        by_status[ticket.status.value] += 1
        if is_overdue(ticket, now):
            overdue += 1

    return TicketCounts(
        total=len(tickets),
        pending=sum(by_status[status.value] for status in PENDING_STATUSES),
        new=by_status[TicketStatus.NEW.value],
        open=by_status[TicketStatus.OPEN.value],
        in_progress=by_status[TicketStatus.IN_PROGRESS.value],
        resolved=by_status[TicketStatus.RESOLVED.value],
        closed=by_status[TicketStatus.CLOSED.value],
        overdue=overdue,
        by_status=by_status,
    )


def breakdown(
    tickets: Sequence[Ticket],
    key: Callable[[Ticket], str],
) -> List[CountBreakdown]:
    """Count and share of each key present, largest first."""
    total = len(tickets)
    if total == 0:
        return []

    counts: Dict[str, int] = defaultdict(int)
    for ticket in tickets:
        counts[key(ticket)] += 1

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        CountBreakdown(key=name, count=count, percentage=share_percentage(count, total))
        for name, count in ordered
    ]


def category_breakdown(tickets: Sequence[Ticket]) -> List[CountBreakdown]:
    return breakdown(tickets, lambda ticket: ticket.category.value)


def priority_breakdown(tickets: Sequence[Ticket]) -> List[CountBreakdown]:
    return breakdown(tickets, lambda ticket: ticket.priority.value)


# ========== Trends ==========

def _group_by_month(tickets: Iterable[Ticket]) -> Dict[str, List[Ticket]]:
    groups: Dict[str, List[Ticket]] = defaultdict(list)
    for ticket in tickets:
        groups[month_key(ticket.created_at)].append(ticket)
    return groups


def resolution_trend(
    tickets: Sequence[Ticket],
    now: datetime,
    months: int = 6,
    target_days: float = 3.0,
) -> List[ResolutionTrendPoint]:
    """
    Average days to close, per creation month.

    Only tickets created inside the window that are resolved or closed
    count; months without any are left out rather than reported as zero.
    """
    start = trend_window_start(now, months)
    closed = [t for t in created_since(tickets, start) if is_closed_out(t)]

    points = []
    for key, group in sorted(_group_by_month(closed).items()):
        average = sum(resolution_days(t) for t in group) / len(group)
        points.append(ResolutionTrendPoint(
            month=key,
            label=month_label(key),
            average_days=round_one_decimal(average),
            target_days=target_days,
            tickets=len(group),
        ))
    return points


def ticket_trend(
    tickets: Sequence[Ticket],
    now: datetime,
    months: int = 6,
) -> List[TicketTrendPoint]:
    """Tickets created per month against how many of them are resolved/closed."""
    start = trend_window_start(now, months)

    points = []
    for key, group in sorted(_group_by_month(created_since(tickets, start)).items()):
        points.append(TicketTrendPoint(
            month=key,
            label=month_label(key),
            tickets=len(group),
            resolved=sum(1 for t in group if t.status in TERMINAL_STATUSES),
        ))
    return points


# ========== Team & SLA ==========

def resolution_compliance(tickets: Iterable[Ticket]) -> tuple[int, int]:
    """(compliant, evaluated) over closed-out tickets; no due date counts as met."""
    compliant = evaluated = 0
    for ticket in tickets:
        if not is_closed_out(ticket):
            continue
        evaluated += 1
        if SLACalculator.is_compliant(ticket.closed_at, ticket.due_date):
            compliant += 1
    return compliant, evaluated


def team_performance(
    members: Sequence[DirectoryUser],
    tickets: Sequence[Ticket],
    now: datetime,
    window_days: int = 30,
) -> List[TeamPerformanceRow]:
    """
    Per team member, over tickets assigned to them and created in the window.

    SLA compliance only considers closed tickets that have a due date.
    """
    start = now - timedelta(days=window_days)
    by_assignee: Dict[str, List[Ticket]] = defaultdict(list)
    for ticket in created_since(tickets, start):
        if ticket.assigned_to_id:
            by_assignee[ticket.assigned_to_id].append(ticket)

    rows = []
    for member in members:
        assigned = by_assignee.get(member.id, [])
        closed = [t for t in assigned if is_closed_out(t)]
        with_due_date = [t for t in closed if t.due_date is not None]
        compliant, evaluated = resolution_compliance(with_due_date)

        average = sum(resolution_days(t) for t in closed) / len(closed) if closed else 0.0
        rows.append(TeamPerformanceRow(
            user_id=member.id,
            name=member.name,
            role=member.role.value,
            assigned=len(assigned),
            resolved=sum(1 for t in assigned if t.status in TERMINAL_STATUSES),
            average_resolution_days=round_one_decimal(average),
            sla_compliance=compliance_percentage(compliant, evaluated),
        ))
    return rows


def sla_metrics(
    tickets: Sequence[Ticket],
    now: datetime,
    window_days: int = 30,
    sla_config: Optional[SLAConfig] = None,
) -> SLAMetrics:
    """
    Response and resolution compliance over tickets created in the window.

    A ticket counts toward response compliance once it was responded to or
    its response deadline passed; toward resolution compliance once closed.
    """
    recent = created_since(tickets, now - timedelta(days=window_days))

    responded_in_time = responses = 0
    for ticket in recent:
        verdict = SLACalculator.is_response_compliant(
            ticket.created_at, ticket.first_response_at, ticket.service_level, now, sla_config
        )
        if verdict is None:
            continue
        responses += 1
        if verdict:
            responded_in_time += 1

    resolved_in_time, resolutions = resolution_compliance(recent)

    return SLAMetrics(
        response_time_compliance=compliance_percentage(responded_in_time, responses),
        resolution_time_compliance=compliance_percentage(resolved_in_time, resolutions),
        responses_evaluated=responses,
        resolutions_evaluated=resolutions,
    )


def overall_compliance(tickets: Sequence[Ticket], now: datetime) -> tuple[int, int]:
    """(compliance %, violations) where violations are overdue open tickets."""
    violations = sum(1 for ticket in tickets if is_overdue(ticket, now))
    total = len(tickets)
    return compliance_percentage(total - violations, total), violations


# ========== Export ==========

def export_rows(
    tickets: Sequence[Ticket],
    users: Dict[str, DirectoryUser],
) -> List[ExportRow]:
    """One row per ticket, newest first, with people and category names filled in."""
    def name_of(user_id: Optional[str], fallback: str) -> str:
        user = users.get(user_id) if user_id else None
        return user.name if user else fallback

    ordered = sorted(tickets, key=lambda t: (t.created_at, t.ticket_number), reverse=True)
    return [
        ExportRow(
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            status=ticket.status.value,
            priority=ticket.priority.value,
            requester=name_of(ticket.requester_id, "Unknown"),
            assigned_to=name_of(ticket.assigned_to_id, "Unassigned"),
            category=CATEGORY_NAMES.get(ticket.category, "Unknown"),
            subcategory=ticket.subcategory,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )
        for ticket in ordered
    ]
