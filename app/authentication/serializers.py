"""
Serializers for authentication models.

This module provides DRF serializers for:
- UserSummarySerializer: Compact public profile embedded in chat payloads
- UserSerializer: The authenticated user's own account (read/update)

Related files:
    - models.py: User model
    - views.py: CurrentUserView
    - chat/serializers.py: Embeds UserSummarySerializer for senders/participants
"""

from rest_framework import serializers

from authentication.models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Public profile of a user as shown to other chat participants.

    Deliberately excludes account flags; only what another participant
    needs to render a sender, member list entry, or join request.
    """

    class Meta:
        model = User
        fields = ["id", "username", "email", "avatar", "is_online", "last_seen"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for the authenticated user's own account.

    Only username and avatar are writable; everything else is managed by
    the identity provider or by the realtime presence tracking.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "avatar",
            "email_verified",
            "is_online",
            "last_seen",
            "date_joined",
        ]
        read_only_fields = [
            "id",
            "email",
            "email_verified",
            "is_online",
            "last_seen",
            "date_joined",
        ]

    def validate_username(self, value):
        """Reject handles already taken, case-insensitively."""
        queryset = User.objects.filter(username__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("This username is already taken.")
        return value
