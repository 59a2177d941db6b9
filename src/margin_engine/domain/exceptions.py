"""
Domain-level exceptions for the margin engine.

This module defines exceptions that are specific to domain logic and business rules.
These exceptions are raised within domain entities and services.
"""

from typing import Any
from uuid import UUID


class DomainException(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ValidationError(DomainException):
    """Raised when an input or entity fails shape or range validation."""

    def __init__(self, message: str, field: str | None = None, **kwargs: Any) -> None:
        details: dict[str, Any] = {"field": field} if field else {}
        details.update(kwargs)
        super().__init__(message, details)
        self.field = field


class StaleDataException(DomainException):
    """
    Raised when attempting to update an entity that has been modified by another process.

    This is the domain's optimistic locking exception indicating version conflict.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: UUID | str,
        expected_version: int,
        actual_version: int | None = None,
    ) -> None:
        message = (
            f"{entity_type} {entity_id} has been modified by another process. "
            f"Expected version {expected_version}"
        )
        if actual_version is not None:
            message += f", but found version {actual_version}"

        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class ConcurrencyException(DomainException):
    """
    General concurrency-related exception for domain operations.

    Used for lock timeouts and exhausted optimistic retries.
    """

    def __init__(
        self,
        message: str,
        entity_type: str | None = None,
        entity_id: UUID | str | None = None,
        operation: str | None = None,
    ) -> None:
        details = {}
        if entity_type:
            details["entity_type"] = entity_type
        if entity_id:
            details["entity_id"] = str(entity_id)
        if operation:
            details["operation"] = operation

        super().__init__(message, details)
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation


class OptimisticLockException(ConcurrencyException):
    """Raised when an optimistic update keeps conflicting after the maximum retries."""

    def __init__(
        self,
        entity_type: str,
        entity_id: UUID | str,
        retries: int,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = (
                f"Failed to update {entity_type} {entity_id} after {retries} retries "
                "due to concurrent modifications"
            )

        super().__init__(
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
            operation="update",
        )
        self.retries = retries


class PessimisticLockException(ConcurrencyException):
    """Raised when a lock cannot be acquired within the timeout."""

    def __init__(
        self,
        entity_type: str,
        entity_id: UUID | str,
        timeout: float,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = (
                f"Failed to acquire lock for {entity_type} {entity_id} within {timeout} seconds"
            )

        super().__init__(
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
            operation="lock",
        )
        self.timeout = timeout
