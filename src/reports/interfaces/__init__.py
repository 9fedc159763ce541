"""
Report Interfaces Layer
=======================

FastAPI routes for reports and the shared filter query parameters.
"""

from src.reports.interfaces.controllers import report_router

__all__ = ["report_router"]
