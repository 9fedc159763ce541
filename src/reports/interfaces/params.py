"""
Filter Query Parameters
=======================

FastAPI dependency that reads TicketFilter criteria from the query string.
Repeat a list parameter to match several values, e.g.
``?status=OPEN&status=IN_PROGRESS``.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import Query
from pydantic import ValidationError

from src.config import Priority, TicketCategory, TicketStatus
from src.core import ValidationException
from src.reports.domain.filters import TicketFilter


async def ticket_filter_params(
    date_from: Optional[datetime] = Query(None, description="Created at or after (inclusive)"),
    date_to: Optional[datetime] = Query(None, description="Created at or before (inclusive)"),
    requester_id: Optional[str] = Query(None),
    assigned_to_id: Optional[str] = Query(None),
    status: Optional[List[TicketStatus]] = Query(None),
    priority: Optional[List[Priority]] = Query(None),
    category: Optional[List[TicketCategory]] = Query(None),
) -> TicketFilter:
    try:
        return TicketFilter(
            date_from=date_from,
            date_to=date_to,
            requester_id=requester_id,
            assigned_to_id=assigned_to_id,
            status=status or [],
            priority=priority or [],
            category=category or [],
        )
    except ValidationError as e:
        raise ValidationException("Invalid filter", {"errors": [err["msg"] for err in e.errors()]})
