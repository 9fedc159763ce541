"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. None of them are retried; the
API layer maps each one to a transport status.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ForbiddenException(ApplicationException):
    """Actor lacks visibility or mutation rights on a resource."""


class ConflictException(ApplicationException):
    """Optimistic concurrency check failed; the resource changed underneath."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class InvalidTransitionException(DomainException):
    """Requested status change is not in the transition table."""

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        details: Optional[dict] = None
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Invalid status transition from {current_status} to {requested_status}",
            details or {"from": current_status, "to": requested_status}
        )


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""

