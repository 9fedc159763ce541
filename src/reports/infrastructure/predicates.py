"""
Ticket Predicate Builder
========================

Turns a TicketFilter into one SQLAlchemy WHERE clause over the tickets
table. Reports, ticket listing and saved searches all filter through here.
"""

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from src.reports.domain.filters import TicketFilter
from src.tickets.infrastructure.models import TicketModel


def build_ticket_predicate(ticket_filter: TicketFilter) -> ColumnElement[bool]:
    """
    Build a single predicate from filter criteria.

    Multi-valued fields become IN clauses; all given fields are AND'd.
    An empty filter matches every ticket.
    """
    conditions = []

    if ticket_filter.date_from is not None:
        conditions.append(TicketModel.created_at >= ticket_filter.date_from)
    if ticket_filter.date_to is not None:
        conditions.append(TicketModel.created_at <= ticket_filter.date_to)

    if ticket_filter.requester_id:
        conditions.append(TicketModel.requester_id == ticket_filter.requester_id)
    if ticket_filter.assigned_to_id:
        conditions.append(TicketModel.assigned_to_id == ticket_filter.assigned_to_id)

    if ticket_filter.status:
        conditions.append(TicketModel.status.in_([s.value for s in ticket_filter.status]))
    if ticket_filter.priority:
        conditions.append(TicketModel.priority.in_([p.value for p in ticket_filter.priority]))
    if ticket_filter.category:
        conditions.append(TicketModel.category.in_([c.value for c in ticket_filter.category]))

    if not conditions:
        return true()
    return and_(*conditions)
