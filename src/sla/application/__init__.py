"""
SLA Application Layer
=====================

Contains:
- SLAPolicyService: active targets and classification suggestions
- BreachMonitor: periodic sweep publishing SLA_BREACHED events
"""

from src.sla.application.services import BreachMonitor, SLAPolicyService

__all__ = ["BreachMonitor", "SLAPolicyService"]
