"""
Tests for notification models.

Covers:
- DeviceToken queryset helpers and deactivation
- NotificationPreference defaults
"""

from notifications.models import (
    DeviceToken,
    GroupChatNotificationLevel,
    NotificationPreference,
)
from notifications.tests.factories import (
    DeviceTokenFactory,
    NotificationPreferenceFactory,
)


class TestDeviceToken:
    """Tests for DeviceToken."""

    def test_active_for_user_filters_inactive_and_other_users(self, user, other_user):
        mine = DeviceTokenFactory(user=user)
        DeviceTokenFactory(user=user, is_active=False)
        DeviceTokenFactory(user=other_user)

        tokens = list(DeviceToken.objects.active().for_user(user.id))

        assert tokens == [mine]

    def test_deactivate_persists(self, device):
        device.deactivate()

        device.refresh_from_db()
        assert device.is_active is False

    def test_str_mentions_status(self, device):
        assert "active" in str(device)


class TestNotificationPreference:
    """
    Tests for NotificationPreference.level_for.

    Why it matters: users who never opened settings must still receive
    group chat pushes.
    """

    def test_defaults_to_all_without_row(self, user):
        assert NotificationPreference.level_for(user.id) == GroupChatNotificationLevel.ALL

    def test_returns_stored_level(self, user):
        NotificationPreferenceFactory(
            user=user, group_chats=GroupChatNotificationLevel.MENTIONS_ONLY
        )

        assert NotificationPreference.level_for(user.id) == "mentions_only"
