"""
Report Infrastructure Repositories
==================================

Read-only ticket queries for reporting. Reports are not transactionally
consistent with concurrent writes; each query sees committed data.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.reports.application.services import IReportRepository
from src.reports.domain.filters import TicketFilter
from src.reports.infrastructure.predicates import build_ticket_predicate
from src.tickets.domain import Ticket
from src.tickets.infrastructure.mappers import to_ticket
from src.tickets.infrastructure.models import TicketModel


class SQLAlchemyReportRepository(IReportRepository):
    """Loads the tickets a report is computed over."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_tickets(self, ticket_filter: TicketFilter) -> List[Ticket]:
        stmt = (
            select(TicketModel)
            .where(build_ticket_predicate(ticket_filter))
            .order_by(TicketModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [to_ticket(model) for model in result.scalars().all()]
