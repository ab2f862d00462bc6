"""
Tests for notification API endpoints.

Covers:
- POST/DELETE /api/v1/notifications/devices/
- GET/PUT /api/v1/notifications/preferences/
"""

import pytest
from rest_framework import status

from notifications.models import DeviceToken, NotificationPreference
from notifications.tests.factories import DeviceTokenFactory

DEVICES_URL = "/api/v1/notifications/devices/"
PREFERENCES_URL = "/api/v1/notifications/preferences/"


# =============================================================================
# Devices
# =============================================================================


class TestDeviceRegistration:
    """Tests for registering device tokens."""

    def test_requires_authentication(self, api_client):
        response = api_client.post(DEVICES_URL, {"token": "abc"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_registers_token(self, authenticated_client, user):
        response = authenticated_client.post(
            DEVICES_URL, {"token": "abc", "platform": "ios"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        device = DeviceToken.objects.get(token="abc")
        assert device.user == user
        assert device.platform == "ios"

    def test_reassigns_token_from_other_user_and_reactivates(
        self, authenticated_client, user, other_user
    ):
        """
        Why it matters: a phone handed to another account must stop
        receiving the previous owner's chats.
        """
        DeviceTokenFactory(user=other_user, token="shared", is_active=False)

        response = authenticated_client.post(DEVICES_URL, {"token": "shared"}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        device = DeviceToken.objects.get(token="shared")
        assert device.user == user
        assert device.is_active is True

    def test_rejects_unknown_platform(self, authenticated_client):
        response = authenticated_client.post(
            DEVICES_URL, {"token": "abc", "platform": "fax"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestDeviceUnregistration:
    """Tests for removing device tokens."""

    def test_deletes_own_token(self, authenticated_client, device):
        response = authenticated_client.delete(
            DEVICES_URL, {"token": device.token}, format="json"
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not DeviceToken.objects.filter(pk=device.pk).exists()

    def test_foreign_token_is_not_found(self, authenticated_client, other_user):
        foreign = DeviceTokenFactory(user=other_user)

        response = authenticated_client.delete(
            DEVICES_URL, {"token": foreign.token}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "DEVICE_NOT_FOUND"
        assert response.data["error_kind"] == "not_found"
        assert DeviceToken.objects.filter(pk=foreign.pk).exists()


# =============================================================================
# Preferences
# =============================================================================


class TestPreferences:
    """Tests for the group chat push level."""

    def test_default_is_all(self, authenticated_client):
        response = authenticated_client.get(PREFERENCES_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"group_chats": "all"}

    @pytest.mark.parametrize("level", ["mentions_only", "none", "all"])
    def test_put_updates_level(self, authenticated_client, user, level):
        response = authenticated_client.put(
            PREFERENCES_URL, {"group_chats": level}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert NotificationPreference.objects.get(user=user).group_chats == level

    def test_put_rejects_invalid_level(self, authenticated_client):
        response = authenticated_client.put(
            PREFERENCES_URL, {"group_chats": "sometimes"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
