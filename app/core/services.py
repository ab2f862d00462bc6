"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ErrorKind: Stable failure categories shared by every service
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class GroupLifecycleService(BaseService):
        def leave_group(self, group_id: int, user: User) -> ServiceResult[None]:
            with self.atomic():
                group = GroupChat.objects.select_for_update().filter(pk=group_id).first()
                if group is None:
                    return ServiceResult.not_found(
                        "Group chat not found", error_code="GROUP_NOT_FOUND"
                    )
                ...

            self.get_logger().info(f"User {user.id} left group {group_id}")
            return ServiceResult.success(None)

    # In view
    result = service.leave_group(pk, request.user)
    if not result:
        return service_error_response(result)
    return Response(status=204)

Related:
    - core.exceptions: For unexpected/exceptional errors
    - core.views.service_error_response: Maps ErrorKind to HTTP status
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


class ErrorKind:
    """
    Failure categories carried by ServiceResult.

    BAD_REQUEST: Malformed input or an invalid transition by a valid actor
    FORBIDDEN: Actor is known but lacks the required role
    NOT_FOUND: Resource missing, or hidden from an actor who may not see it
    CONFLICT: Concurrent writer won a race the caller lost
    """

    BAD_REQUEST = "bad_request"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        error_kind: Failure category (see ErrorKind), drives the HTTP status
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(group)

        # Failure cases
        return ServiceResult.failure("Group name is required", "NAME_REQUIRED")
        return ServiceResult.forbidden("Only admins can do this", "NOT_ADMIN")
        return ServiceResult.not_found("Group chat not found", "GROUP_NOT_FOUND")

        # Check result
        result = service.create_group(...)
        if result.success:
            group = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    error_kind: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        kind: str = ErrorKind.BAD_REQUEST,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            kind: Failure category, defaults to ErrorKind.BAD_REQUEST

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            error_kind=kind,
            errors=errors,
        )

    @classmethod
    def forbidden(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """Create a failed result for an actor lacking the required role."""
        return cls.failure(error, error_code, kind=ErrorKind.FORBIDDEN)

    @classmethod
    def not_found(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """Create a failed result for a missing or hidden resource."""
        return cls.failure(error, error_code, kind=ErrorKind.NOT_FOUND)

    @classmethod
    def conflict(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """Create a failed result for a lost concurrent race."""
        return cls.failure(error, error_code, kind=ErrorKind.CONFLICT)

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details

        Example:
            {
                "success": False,
                "error": "Only group admins can add participants",
                "error_code": "NOT_ADMIN",
                "error_kind": "forbidden"
            }
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.error_kind:
            response["error_kind"] = self.error_kind
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = service.leave_group(group_id, user)
            if result:  # Same as: if result.success
                print("Left!")
        """
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Services hold no per-request state; collaborators (notifier,
          storage) are passed in at construction so tests can swap fakes
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Example:
            with cls.atomic():
                group = GroupChat.objects.create(name=name, created_by=user)
                Membership.objects.create(group=group, user=user, is_admin=True)
                # If Membership creation fails, the group is also rolled back
        """
        with transaction.atomic():
            yield
