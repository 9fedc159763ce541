"""
Reporting Module
================

Bounded Context for operational ticket reports.

Responsibilities:
- Translate filter criteria into one ticket predicate
- Status, category and priority breakdowns
- Resolution-time and volume trends per creation month
- Team performance and SLA compliance over a trailing window
- Flat export (JSON / CSV)
"""

__version__ = "1.0.0"
