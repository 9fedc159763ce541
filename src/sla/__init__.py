"""
SLA Policy Module
=================

Bounded Context for service level targets.

Responsibilities:
- Resolve response and resolution targets per service level
- Compute due dates and evaluate compliance and breach
- Suggest priority and service level from impact and urgency
- Hot-reload targets from sla_config.yaml via watchdog
- Sweep for newly breached tickets on a schedule
"""
