"""
Service layer for device and preference management.

Services:
    DeviceService: Register/unregister push device tokens
    PreferenceService: Read/update the group chat push level

Related files:
    - models.py: DeviceToken, NotificationPreference
    - views.py: API endpoints calling these services
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult
from notifications.models import (
    DevicePlatform,
    DeviceToken,
    GroupChatNotificationLevel,
    NotificationPreference,
)

if TYPE_CHECKING:
    from authentication.models import User


class DeviceService(BaseService):
    """
    Service for device token registration.

    Methods:
        register_device: Attach a token to the user (moving it from another user if needed)
        unregister_device: Remove one of the user's tokens
    """

    @classmethod
    def register_device(
        cls,
        user: User,
        token: str,
        platform: str = DevicePlatform.ANDROID,
    ) -> ServiceResult[DeviceToken]:
        """
        Register a device token for the user.

        A token is unique across users: if a different account registered
        it earlier (shared device, re-login), it is reassigned. Re-registering
        a deactivated token reactivates it.
        """
        token = (token or "").strip()
        if not token:
            return ServiceResult.failure("Device token is required", "TOKEN_REQUIRED")

        with cls.atomic():
            device, created = DeviceToken.objects.select_for_update().get_or_create(
                token=token,
                defaults={"user": user, "platform": platform},
            )
            if not created:
                device.user = user
                device.platform = platform
                device.is_active = True
                device.save(update_fields=["user", "platform", "is_active", "updated_at"])

        cls.get_logger().info(
            f"Device token {device.pk} {'registered' if created else 're-registered'} "
            f"for user {user.id}"
        )
        return ServiceResult.success(device)

    @classmethod
    def unregister_device(cls, user: User, token: str) -> ServiceResult[None]:
        """Delete one of the user's tokens; not_found for tokens owned by others."""
        deleted, _ = DeviceToken.objects.filter(user=user, token=token).delete()
        if not deleted:
            return ServiceResult.not_found(
                "Device token not registered", "DEVICE_NOT_FOUND"
            )
        cls.get_logger().info(f"Device token unregistered for user {user.id}")
        return ServiceResult.success(None)


class PreferenceService(BaseService):
    """
    Service for the per-user group chat push preference.

    Methods:
        get_preference: Current level (defaults to "all")
        set_group_chats: Update the level
    """

    @classmethod
    def get_preference(cls, user: User) -> ServiceResult[dict]:
        return ServiceResult.success(
            {"group_chats": NotificationPreference.level_for(user.id)}
        )

    @classmethod
    def set_group_chats(cls, user: User, level: str) -> ServiceResult[dict]:
        if level not in GroupChatNotificationLevel.values:
            return ServiceResult.failure(
                f"Invalid level: {level}", "INVALID_PREFERENCE"
            )

        NotificationPreference.objects.update_or_create(
            user=user, defaults={"group_chats": level}
        )
        cls.get_logger().info(f"User {user.id} set group_chats preference to {level}")
        return ServiceResult.success({"group_chats": level})
