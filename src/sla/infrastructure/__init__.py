"""
SLA Infrastructure Layer
========================

- Config: YAML loading with watchdog hot-reload
- Scheduler: APScheduler job for the breach sweep
"""

from src.sla.infrastructure.config import SLAConfigManager, get_sla_config, sla_config_manager
from src.sla.infrastructure.scheduler import SLAScheduler

__all__ = [
    "SLAConfigManager",
    "SLAScheduler",
    "get_sla_config",
    "sla_config_manager",
]
