"""
SLA Domain Layer
================

Domain layer for the SLA policy module.

Contains:
- Value Objects: Immutable objects defined by attributes (SLATarget, SLAConfig)
- Domain Services: Stateless business logic (SLACalculator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.sla.domain.value_objects import (
    DEFAULT_SLA_TARGETS,
    PRIORITY_MATRIX,
    SLACalculator,
    SLAConfig,
    SLATarget,
    ServiceLevelTargets,
)

__all__ = [
    "DEFAULT_SLA_TARGETS",
    "PRIORITY_MATRIX",
    "SLACalculator",
    "SLAConfig",
    "SLATarget",
    "ServiceLevelTargets",
]
