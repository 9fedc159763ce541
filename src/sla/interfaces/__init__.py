"""
SLA Interfaces Layer
====================

Interface adapters (controllers) for the SLA policy module.
"""

from src.sla.interfaces.controllers import sla_router

__all__ = ["sla_router"]
