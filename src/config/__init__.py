"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA targets YAML file"
    )
    sla_breach_sweep_interval: int = Field(
        default=300,
        description="Seconds between SLA breach sweeps (0 disables the sweep)",
        ge=0
    )

    # ========== Notifications ==========
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook receiving domain events (email/WebSocket fan-out)"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for webhook calls",
        ge=0.1,
        le=30
    )

    # ========== Reporting ==========
    report_trend_months: int = Field(
        default=6,
        description="Trailing calendar months covered by trend series",
        ge=1,
        le=24
    )
    report_window_days: int = Field(
        default=30,
        description="Trailing days covered by team performance and SLA metrics",
        ge=1
    )
    report_resolution_target_days: float = Field(
        default=3.0,
        description="Target average resolution time shown next to the trend",
        ge=0
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Role(str, Enum):
    """Actor roles issued by the identity provider."""
    END_USER = "END_USER"
    SUPPORT_STAFF = "SUPPORT_STAFF"
    SUPPORT_MANAGER = "SUPPORT_MANAGER"
    ADMIN = "ADMIN"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    NEW = "NEW"
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    # Transition target only; a reopened ticket is stored as OPEN
    REOPENED = "REOPENED"


class TicketCategory(str, Enum):
    """Top-level ticket categories."""
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    NETWORK = "NETWORK"
    ACCESS = "ACCESS"
    OTHER = "OTHER"


class Priority(str, Enum):
    """Ticket priority levels."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Impact(str, Enum):
    """Business impact of the reported issue."""
    MINOR = "MINOR"
    MODERATE = "MODERATE"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"


class Urgency(str, Enum):
    """How quickly the requester needs a fix."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    IMMEDIATE = "IMMEDIATE"


class ServiceLevel(str, Enum):
    """Support tiers that determine SLA targets."""
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    CRITICAL_SUPPORT = "CRITICAL_SUPPORT"


class EventType(str, Enum):
    """Domain events emitted to the notification collaborator."""
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"
    COMMENT_CREATED = "COMMENT_CREATED"
    SLA_BREACHED = "SLA_BREACHED"


# ========== Lists for validation ==========

STORED_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
PENDING_STATUSES = [TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.IN_PROGRESS]
TERMINAL_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]
ELEVATED_ROLES = [Role.SUPPORT_STAFF, Role.SUPPORT_MANAGER, Role.ADMIN]
MODERATOR_ROLES = [Role.SUPPORT_MANAGER, Role.ADMIN]
TEAM_ROLES = [Role.SUPPORT_STAFF, Role.SUPPORT_MANAGER]
