"""
Helpdesk Service - Main Application
===================================

IT helpdesk ticketing with SLA tracking and reporting.

Modules:
- Tickets: Lifecycle, assignment, audit trail, comments and attachments
- SLA: Service level targets, breach detection and the breach sweep
- Reports: Ticket and SLA reporting with JSON/CSV export
- Saved Searches: Reusable, optionally shared ticket filters

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and pure rules
- Infrastructure: Database, configuration, scheduler, notifications
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from src.config import settings
from src.core import ApplicationException

# Infrastructure
from src.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)

# Shared
from src.shared.api import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from src.shared.infrastructure.logging import get_logger, setup_logging
from src.shared.infrastructure.notifications import (
    build_event_publisher,
    get_event_publisher,
    set_event_publisher,
)

# SLA Module
from src.sla.application import BreachMonitor
from src.sla.infrastructure import SLAScheduler, sla_config_manager
from src.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

# Module Routers
from src.reports.interfaces import report_router
from src.saved_searches.interfaces import saved_search_router
from src.sla.interfaces import sla_router
from src.tickets.interfaces import ticket_router

logger = get_logger(__name__)

# Global service instances
sla_scheduler: Optional[SLAScheduler] = None


async def run_breach_sweep(monitor: BreachMonitor) -> None:
    """Background breach sweep with a session of its own."""
    try:
        async with get_session_context() as session:
            monitor.use_repository(SQLAlchemyTicketRepository(session))
            await monitor.sweep()
    except Exception:
        logger.exception("SLA breach sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load SLA configuration and watch it for changes
    4. Build the event publisher
    5. Start the breach sweep scheduler

    SHUTDOWN:
    1. Stop scheduler and config watcher
    2. Flush pending event deliveries
    3. Close database connections
    """
    global sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Note: If the database is not available, the server still starts and
    # database-dependent endpoints fail until it is.
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Loading SLA configuration")
    sla_config_manager.load(settings.sla_config_path)
    sla_config_manager.start_watching()

    set_event_publisher(build_event_publisher())

    if settings.sla_breach_sweep_interval > 0:
        monitor = BreachMonitor(
            ticket_repository=None,
            publisher=get_event_publisher(),
            interval_seconds=settings.sla_breach_sweep_interval,
        )

        async def breach_sweep_job():
            await run_breach_sweep(monitor)

        sla_scheduler = SLAScheduler(interval_seconds=settings.sla_breach_sweep_interval)
        await sla_scheduler.start(breach_sweep_job)
    else:
        logger.info("SLA breach sweep disabled")

    logger.info("Helpdesk Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Service")

    if sla_scheduler:
        await sla_scheduler.stop()
        sla_scheduler = None

    sla_config_manager.stop_watching()

    await get_event_publisher().close()

    await close_database()

    logger.info("Helpdesk Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Service API",
    description="""
    ## IT Helpdesk Ticketing

    Ticket lifecycle with SLA tracking, audit history and reporting.

    ---

    ### Authentication

    Requests carry the caller's identity from the API gateway:

    - `X-User-Id`: user id
    - `X-User-Role`: `END_USER`, `SUPPORT_STAFF`, `SUPPORT_MANAGER` or `ADMIN`

    ---

    ### Modules

    - `/tickets` - open, update, transition, assign, history, comments, attachments
    - `/sla` - targets, classification suggestion, live breaches
    - `/reports` - ticket report, export (JSON/CSV), SLA report
    - `/saved-searches` - store, share and run ticket filters
    - `/directory/users` - user directory mirror

    ---

    ### SLA Targets (hours, response / resolution)

    | Service level | Response | Resolution |
    |---|---|---|
    | STANDARD | 8 | 40 |
    | PREMIUM | 4 | 16 |
    | CRITICAL_SUPPORT | 0 | 4 |

    Overridable in `sla_config.yaml`.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(ticket_router)
app.include_router(sla_router)
app.include_router(report_router)
app.include_router(saved_search_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "sla_config": "loaded",
                        "sla_config_watcher": "running",
                        "sla_scheduler": "running"
                    }
                }
            }
        }
    }
})
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - SLA configuration status
    - Config watcher and scheduler state
    """
    checks = {
        "sla_config": "loaded" if sla_config_manager.is_loaded else "defaults",
        "sla_config_watcher": "running" if sla_config_manager.is_watching else "stopped",
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {"prefix": "/tickets"},
            "sla": {"prefix": "/sla"},
            "reports": {"prefix": "/reports"},
            "saved_searches": {"prefix": "/saved-searches"},
            "directory": {"prefix": "/directory/users"},
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
