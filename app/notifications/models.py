"""
Notification models.

This module defines the registry the push path reads from:
- DeviceToken: push tokens registered by a user's devices
- NotificationPreference: per-user switch for group chat pushes

Design Decisions:
    - Tokens are deactivated rather than deleted when the provider reports
      them unregistered, so a re-registration reactivates the same row
    - A missing NotificationPreference row means "all"; rows are created
      lazily the first time the user changes the setting

Related files:
    - providers.py: Push providers that consume DeviceToken.token
    - tasks.py: send_push_notification
    - chat/fanout.py: Reads both models to decide whether to push
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class DevicePlatform(models.TextChoices):
    """Platform a device token was issued for."""

    ANDROID = "android", "Android"
    IOS = "ios", "iOS"
    WEB = "web", "Web"


class GroupChatNotificationLevel(models.TextChoices):
    """
    How much group chat activity is pushed to a user.

    ALL: Every message and group update
    MENTIONS_ONLY: Messages only when they contain @username; group updates still pushed
    NONE: Nothing is pushed (realtime events are unaffected)
    """

    ALL = "all", "All messages"
    MENTIONS_ONLY = "mentions_only", "Mentions only"
    NONE = "none", "None"


class DeviceTokenQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_user(self, user_id: int):
        return self.filter(user_id=user_id)


class DeviceToken(BaseModel):
    """
    A push token registered by one of the user's devices.

    Fields:
        user: Owner of the device
        token: Provider token (FCM registration token); unique across users
        platform: android / ios / web
        is_active: False once the provider reported the token as invalid
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="device_tokens",
        help_text="User who registered this device",
    )

    token = models.CharField(
        max_length=512,
        unique=True,
        help_text="Push provider registration token",
    )

    platform = models.CharField(
        max_length=10,
        choices=DevicePlatform.choices,
        default=DevicePlatform.ANDROID,
        help_text="Platform the token was issued for",
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether pushes should still be sent to this token",
    )

    objects = DeviceTokenQuerySet.as_manager()

    class Meta:
        db_table = "notifications_device_token"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["user", "is_active"],
                name="notif_device_user_active_idx",
            ),
        ]

    def __str__(self) -> str:
        status = "active" if self.is_active else "inactive"
        return f"DeviceToken(user={self.user_id}, {self.platform}, {status})"

    def deactivate(self) -> None:
        """Stop sending pushes to this token."""
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])


class NotificationPreference(BaseModel):
    """
    Per-user push preference for group chats.

    One-to-One with User. The absence of a row is equivalent to
    group_chats=ALL.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="notification_preference",
    )

    group_chats = models.CharField(
        max_length=20,
        choices=GroupChatNotificationLevel.choices,
        default=GroupChatNotificationLevel.ALL,
        help_text="Which group chat activity is pushed",
    )

    class Meta:
        db_table = "notifications_preference"
        verbose_name = "notification preference"
        verbose_name_plural = "notification preferences"

    def __str__(self) -> str:
        return f"NotificationPreference(user={self.user_id}, {self.group_chats})"

    @classmethod
    def level_for(cls, user_id: int) -> str:
        """Return the user's group chat level, defaulting to ALL."""
        level = (
            cls.objects.filter(user_id=user_id)
            .values_list("group_chats", flat=True)
            .first()
        )
        return level or GroupChatNotificationLevel.ALL
