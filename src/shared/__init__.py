"""
Shared Kernel Module
====================

This module contains shared infrastructure and domain elements used across
all bounded contexts (SLA, Tickets, Reports, Saved Searches).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure, the actor identity and
  the domain event envelope

DO NOT add ticket or reporting business logic to the shared kernel.
"""

__version__ = "1.0.0"
