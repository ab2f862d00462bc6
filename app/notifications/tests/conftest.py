"""
Test configuration and fixtures for notification tests.

This module provides:
- User and device fixtures
- A recording push provider installed through the PUSH_PROVIDER setting
- API client helpers for authenticated requests

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get('/api/v1/notifications/preferences/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from notifications.providers import DeliveryError
from notifications.tests.factories import DeviceTokenFactory
from notifications.tests.fakes import RecordingPushProvider


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic user to receive notifications."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    """Create another user for ownership tests."""
    return UserFactory()


@pytest.fixture
def device(user):
    """An active Android device for `user`."""
    return DeviceTokenFactory(user=user)


# =============================================================================
# Provider Fixtures
# =============================================================================


@pytest.fixture
def push_provider(settings):
    """
    Route get_push_provider() to RecordingPushProvider.

    Returns the class so tests can inspect `sent` and configure `failures`.
    """
    settings.PUSH_PROVIDER = "notifications.tests.fakes.RecordingPushProvider"
    RecordingPushProvider.reset()
    yield RecordingPushProvider
    RecordingPushProvider.reset()


@pytest.fixture
def permanent_error():
    return DeliveryError("Requested entity was not found.", "unregistered")


@pytest.fixture
def transient_error():
    return DeliveryError("Service unavailable", "provider_unavailable")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client with a valid JWT for `user`."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client
