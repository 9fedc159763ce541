"""
Report Application Layer
========================

ReportService and the reporting repository interface.
"""

from src.reports.application.services import (
    EXPORT_COLUMNS,
    IReportRepository,
    ReportService,
    rows_to_csv,
)

__all__ = [
    "EXPORT_COLUMNS",
    "IReportRepository",
    "ReportService",
    "rows_to_csv",
]
