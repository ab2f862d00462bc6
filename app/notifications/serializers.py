"""
Serializers for notification API.

Serializers:
    DeviceTokenSerializer: Register a device token (request + response)
    DeviceUnregisterSerializer: Unregister a device token
    NotificationPreferenceSerializer: Group chat push level
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import (
    DevicePlatform,
    DeviceToken,
    GroupChatNotificationLevel,
)


class DeviceTokenSerializer(serializers.ModelSerializer):
    """Serializer for DeviceToken; only token and platform are writable."""

    platform = serializers.ChoiceField(
        choices=DevicePlatform.choices,
        default=DevicePlatform.ANDROID,
    )

    class Meta:
        model = DeviceToken
        fields = ["id", "token", "platform", "is_active", "created_at"]
        read_only_fields = ["id", "is_active", "created_at"]
        extra_kwargs = {
            # Uniqueness is handled by DeviceService (reassignment)
            "token": {"validators": []},
        }


class DeviceUnregisterSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=512)


class NotificationPreferenceSerializer(serializers.Serializer):
    """
    Group chat push preference.

    all: every message and group update
    mentions_only: messages only when they @mention you
    none: no group chat pushes
    """

    group_chats = serializers.ChoiceField(choices=GroupChatNotificationLevel.choices)
