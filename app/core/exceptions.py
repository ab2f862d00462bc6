"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes and kinds for client handling
- A DRF exception handler that renders them, and DRF's own errors,
  like failed ServiceResults

Exception Hierarchy:
    BaseApplicationError (base)
    └── NotFoundError - Resource not found (404)

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError("Device token not registered", error_code="DEVICE_NOT_FOUND")

    # Raised inside a DRF view, api_exception_handler renders:
    # 404 {"success": false, "error": "...", "error_code": "DEVICE_NOT_FOUND",
    #      "error_kind": "not_found"}

Note:
    Expected service failures are returned as ServiceResult, not raised.
    These exceptions are for code paths that have no result to return.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.services import ErrorKind

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        error_kind: Failure category shared with ServiceResult
        status_code: HTTP status used by api_exception_handler
    """

    default_error_code: str = "APPLICATION_ERROR"
    error_kind: str = ErrorKind.BAD_REQUEST
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "success": False,
                "error": "Device token not registered",
                "error_code": "DEVICE_NOT_FOUND",
                "error_kind": "not_found"
            }
        """
        result: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
            "error_kind": self.error_kind,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource is not found."""

    default_error_code: str = "NOT_FOUND"
    error_kind = ErrorKind.NOT_FOUND
    status_code = 404


def _kind_for_status(status_code: int) -> str:
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 409:
        return ErrorKind.CONFLICT
    if status_code in (401, 403):
        return ErrorKind.FORBIDDEN
    return ErrorKind.BAD_REQUEST


def _wrap_drf_response(exc, response: Response) -> Response:
    """Rewrite a DRF error body into the failed-result shape."""
    data = response.data
    body: dict[str, Any] = {"success": False}

    if isinstance(data, dict) and set(data) == {"detail"}:
        body["error"] = str(data["detail"])
    else:
        # Field errors from serializers or query parameter checks
        body["error"] = "Invalid input."
        body["details"] = data if isinstance(data, dict) else {"non_field_errors": data}

    kind = _kind_for_status(response.status_code)
    # Django's Http404 and PermissionDenied have no default_code
    body["error_code"] = str(getattr(exc, "default_code", None) or kind).upper()
    body["error_kind"] = kind
    response.data = body
    return response


def api_exception_handler(exc, context):
    """
    DRF exception handler that renders every error like a failed ServiceResult.

    Configured via REST_FRAMEWORK["EXCEPTION_HANDLER"]. BaseApplicationError
    subclasses carry their own code and kind. DRF's exceptions (serializer
    validation, authentication, 404 from get_object_or_404, throttling)
    keep their status code; the kind is derived from it and field errors
    move under "details".
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc}"
        )
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None
    return _wrap_drf_response(exc, response)
