"""
Tests for core HTTP helpers: failed-result rendering, the DRF exception
handler and the health check.
"""

import pytest
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated, ValidationError

from core.exceptions import NotFoundError, api_exception_handler
from core.services import ServiceResult
from core.views import service_error_response


class TestServiceErrorResponse:
    """
    Why it matters: clients branch on the status code, so each failure
    kind must map to exactly one HTTP status.
    """

    @pytest.mark.parametrize(
        "result,expected",
        [
            (ServiceResult.failure("bad", "X"), status.HTTP_400_BAD_REQUEST),
            (ServiceResult.forbidden("no", "X"), status.HTTP_403_FORBIDDEN),
            (ServiceResult.not_found("gone", "X"), status.HTTP_404_NOT_FOUND),
            (ServiceResult.conflict("race", "X"), status.HTTP_409_CONFLICT),
        ],
    )
    def test_kind_maps_to_status(self, result, expected):
        response = service_error_response(result)

        assert response.status_code == expected
        assert response.data == result.to_response()


class TestApiExceptionHandler:
    def test_application_errors_use_result_body(self):
        response = api_exception_handler(
            NotFoundError("Device token not registered", "DEVICE_NOT_FOUND"), {}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {
            "success": False,
            "error": "Device token not registered",
            "error_code": "DEVICE_NOT_FOUND",
            "error_kind": "not_found",
        }

    def test_drf_errors_keep_status_and_gain_kind(self):
        response = api_exception_handler(NotAuthenticated(), {})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data == {
            "success": False,
            "error": "Authentication credentials were not provided.",
            "error_code": "NOT_AUTHENTICATED",
            "error_kind": "forbidden",
        }

    def test_field_errors_move_under_details(self):
        response = api_exception_handler(
            ValidationError({"limit": ["Must be a positive integer."]}), {}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_kind"] == "bad_request"
        assert response.data["error_code"] == "INVALID"
        assert response.data["details"] == {"limit": ["Must be a positive integer."]}

    def test_bare_validation_message_is_kept(self):
        response = api_exception_handler(ValidationError("Pick one."), {})

        assert response.data["details"] == {"non_field_errors": ["Pick one."]}

    def test_django_404_gets_code_from_kind(self):
        response = api_exception_handler(Http404(), {})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "NOT_FOUND"
        assert response.data["error_kind"] == "not_found"


@pytest.mark.django_db
class TestHealthCheck:
    def test_reports_healthy(self, client):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"
        assert response.json()["cache"] == "connected"
