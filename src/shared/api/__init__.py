"""
Shared API Layer
================

Middleware, exception handlers and request dependencies shared by all routers.
"""

from src.shared.api.dependencies import get_current_actor
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

__all__ = [
    "get_current_actor",
    "CorrelationIDMiddleware",
    "LoggingMiddleware",
    "application_exception_handler",
    "global_exception_handler",
]
