"""
Serializers for the group chat API.

Serializer Hierarchy:
    MessageAttachmentSerializer: Stored file metadata
    MessageReactionSerializer: One user's emoji on a message
    MessageSerializer: Message with sender, attachments, reactions, reply snapshot
    LastMessageSerializer: Minimal message for group list preview

    GroupChatSerializer: Full group details with participants and unread map
    GroupListSerializer: Group list row with the caller's unread count
    GroupDiscoverSerializer: Discovery row with joined/requested flags
    JoinRequestSerializer: Pending join request

    GroupCreateSerializer / GroupUpdateSerializer
    AddParticipantsSerializer / RemoveParticipantSerializer
    JoinRequestCreateSerializer / ResolveJoinRequestSerializer
    InviteLinkSerializer
    MessageCreateSerializer / MessageEditSerializer / ReactionSerializer

Design Decisions:
    - Read and write serializers are separate
    - Write serializers validate shape only; business rules live in services
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.constants import (
    ATTACHMENT_CONFIG,
    INVITE_CONFIG,
    MESSAGE_CONFIG,
    REACTION_CONFIG,
)
from chat.models import (
    GroupChat,
    JoinRequest,
    Message,
    MessageAttachment,
    MessageReaction,
    SendPermission,
)


# =============================================================================
# Message Serializers
# =============================================================================


class MessageAttachmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageAttachment
        fields = [
            "position",
            "url",
            "file_type",
            "file_name",
            "file_size",
            "thumbnail_url",
            "duration",
            "width",
            "height",
        ]
        read_only_fields = fields


class MessageReactionSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = MessageReaction
        fields = ["user_id", "username", "emoji", "created_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """
    Message as shown to participants and in realtime payloads.

    `reply_to` is the snapshot captured when the reply was sent, not a live
    view of the original message.
    """

    sender = UserSummarySerializer(read_only=True)
    attachments = MessageAttachmentSerializer(many=True, read_only=True)
    reactions = MessageReactionSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "group",
            "sender",
            "content",
            "attachments",
            "reply_to",
            "reactions",
            "edited",
            "is_read",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class LastMessageSerializer(serializers.ModelSerializer):
    """Minimal message for the group list preview."""

    sender_id = serializers.IntegerField(read_only=True)
    sender_username = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ["id", "sender_id", "sender_username", "content", "created_at"]
        read_only_fields = fields

    def get_sender_username(self, obj: Message) -> str | None:
        return obj.sender.username if obj.sender else None


# =============================================================================
# Group Serializers
# =============================================================================


class GroupChatSerializer(serializers.ModelSerializer):
    """
    Full group details.

    Includes every participant with their admin flag and the canonical
    unread mapping {user_id: count}.
    """

    participants = serializers.SerializerMethodField()
    admin_ids = serializers.ListField(child=serializers.IntegerField(), read_only=True)
    unread_counts = serializers.SerializerMethodField()
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = GroupChat
        fields = [
            "id",
            "name",
            "description",
            "avatar",
            "is_group_chat",
            "created_by",
            "participants",
            "admin_ids",
            "unread_counts",
            "send_messages_permission",
            "send_media_permission",
            "join_by_link",
            "last_activity",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_participants(self, obj: GroupChat) -> list[dict]:
        memberships = obj.memberships.select_related("user")
        return [
            {
                **UserSummarySerializer(membership.user).data,
                "is_admin": membership.is_admin,
                "joined_at": membership.joined_at,
            }
            for membership in memberships
        ]

    def get_unread_counts(self, obj: GroupChat) -> dict[str, int]:
        return {str(user_id): count for user_id, count in obj.unread_counts.items()}


class GroupListSerializer(serializers.ModelSerializer):
    """Group list row; `unread_count` is the caller's own counter."""

    unread_count = serializers.IntegerField(
        source="my_unread_count", read_only=True, default=0
    )
    last_message = LastMessageSerializer(read_only=True)

    class Meta:
        model = GroupChat
        fields = [
            "id",
            "name",
            "description",
            "avatar",
            "unread_count",
            "last_message",
            "last_activity",
            "join_by_link",
        ]
        read_only_fields = fields


class GroupDiscoverSerializer(serializers.ModelSerializer):
    is_joined = serializers.BooleanField(read_only=True)
    has_requested = serializers.BooleanField(read_only=True)
    participant_count = serializers.SerializerMethodField()

    class Meta:
        model = GroupChat
        fields = [
            "id",
            "name",
            "description",
            "avatar",
            "join_by_link",
            "participant_count",
            "is_joined",
            "has_requested",
            "last_activity",
        ]
        read_only_fields = fields

    def get_participant_count(self, obj: GroupChat) -> int:
        return obj.memberships.count()


class JoinRequestSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = JoinRequest
        fields = ["id", "group", "user", "message", "requested_at"]
        read_only_fields = fields


# =============================================================================
# Write Serializers
# =============================================================================


class GroupCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, allow_blank=True)
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        help_text="Users to add besides the creator (at least two)",
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")
    avatar = serializers.URLField(required=False, allow_blank=True, default="")


class GroupUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    avatar = serializers.URLField(required=False, allow_blank=True)
    send_messages_permission = serializers.ChoiceField(
        choices=SendPermission.choices, required=False
    )
    send_media_permission = serializers.ChoiceField(
        choices=SendPermission.choices, required=False
    )


class AddParticipantsSerializer(serializers.Serializer):
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=True
    )


class RemoveParticipantSerializer(serializers.Serializer):
    participant_id = serializers.IntegerField(min_value=1)


class JoinRequestCreateSerializer(serializers.Serializer):
    message = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=""
    )


class ResolveJoinRequestSerializer(serializers.Serializer):
    approve = serializers.BooleanField()


class InviteLinkSerializer(serializers.Serializer):
    expires_in_hours = serializers.FloatField(
        required=False,
        allow_null=True,
        default=None,
        help_text=f"Hours until expiry, at most {INVITE_CONFIG.MAX_EXPIRY_HOURS}",
    )


class MessageCreateSerializer(serializers.Serializer):
    """
    Accepts JSON or multipart.

    Length and count limits are enforced by MessageService so the error
    codes stay the same for every client.
    """

    content = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )
    attachments = serializers.ListField(
        child=serializers.FileField(),
        required=False,
        default=list,
        help_text=f"Up to {ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE} files",
    )
    reply_to = serializers.IntegerField(required=False, allow_null=True, default=None)


class MessageEditSerializer(serializers.Serializer):
    content = serializers.CharField(
        allow_blank=True, help_text=f"At most {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters"
    )


class ReactionSerializer(serializers.Serializer):
    emoji = serializers.CharField(
        allow_blank=True, help_text=f"At most {REACTION_CONFIG.MAX_EMOJI_LENGTH} characters"
    )
