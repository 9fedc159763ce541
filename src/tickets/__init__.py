"""
Ticket Lifecycle Module
=======================

Bounded Context for support tickets and their sub-resources.

Responsibilities:
- Open tickets with durable per-year ticket numbers and SLA due dates
- Validate status transitions and record an audit trail of every change
- Assignment (assigning a NEW ticket opens it)
- Comments (with internal notes) and attachment metadata
- Visibility and mutation rights per actor role
"""

__version__ = "1.0.0"
