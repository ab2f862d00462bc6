"""
Group chat models.

This module defines the data models for group conversations:
- Membership store: groups, memberships (with admin flag and unread counter),
  pending join requests, invite link on the group row
- Message store: messages, ordered attachments, reactions, reply snapshots

Models:
    GroupChat: A named conversation with settings and an invite link
    Membership: A user's participation, admin flag and unread counter
    JoinRequest: A pending request to join a group
    Message: A message within a group
    MessageAttachment: One stored file attached to a message
    MessageReaction: One user's emoji reaction to a message

Design Decisions:
    - The admin flag lives on the membership row, so every admin is a participant
    - Unread counters live on the membership row; removing the member removes the counter
    - Counters are only changed with F() expressions in single UPDATE statements
    - Reply snapshots are frozen at send time and stored as JSON
    - Messages are never deleted one by one; the group cascade removes them
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q

from chat.constants import MESSAGE_CONFIG
from core.models import BaseModel

if TYPE_CHECKING:
    from datetime import datetime


class SendPermission(models.TextChoices):
    """
    Who may post in a group.

    ALL: Every participant
    ADMINS: Only admins
    NONE: Nobody (read-only group)
    """

    ALL = "all", "All participants"
    ADMINS = "admins", "Admins only"
    NONE = "none", "Nobody"


class FileType(models.TextChoices):
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    AUDIO = "audio", "Audio"
    DOCUMENT = "document", "Document"
    OTHER = "other", "Other"


class GroupChatQuerySet(models.QuerySet):
    def for_user(self, user_id: int):
        """Groups the user participates in."""
        return self.filter(memberships__user_id=user_id)


class GroupChat(BaseModel):
    """
    A group conversation.

    Fields:
        name: Display name (required)
        description: Optional free text
        avatar: Optional image URL
        is_group_chat: Always True; kept for clients that branch on it
        created_by: Creator (kept as None if the account is deleted)
        send_messages_permission: Who may post text
        send_media_permission: Who may post attachments
        join_by_link: Whether the invite link currently works
        invite_link_token: 64 hex characters, unique, None when no link exists
        invite_link_expires_at: None means the link never expires
        last_message: Newest message, for list previews
        last_activity: Bumped by messages and group updates (list ordering)

    Relationships:
        memberships: Membership rows (participants)
        join_requests: Pending JoinRequest rows
        messages: Message rows
    """

    name = models.CharField(
        max_length=100,
        help_text="Group display name",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Optional group description",
    )

    avatar = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the group picture",
    )

    is_group_chat = models.BooleanField(
        default=True,
        help_text="Always true for group conversations",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_groups",
        help_text="User who created the group",
    )

    send_messages_permission = models.CharField(
        max_length=10,
        choices=SendPermission.choices,
        default=SendPermission.ALL,
        help_text="Who may send messages",
    )

    send_media_permission = models.CharField(
        max_length=10,
        choices=SendPermission.choices,
        default=SendPermission.ALL,
        help_text="Who may send attachments",
    )

    join_by_link = models.BooleanField(
        default=False,
        help_text="Whether users can join with the invite link",
    )

    invite_link_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        help_text="Invite link token (hex)",
    )

    invite_link_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the invite link stops working (null = never)",
    )

    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in the group",
    )

    last_activity = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of the latest message or group update",
    )

    objects = GroupChatQuerySet.as_manager()

    class Meta:
        db_table = "chat_group"
        ordering = ["-last_activity", "-id"]

    def __str__(self) -> str:
        return f"Group: {self.name}"

    @property
    def unread_counts(self) -> dict[int, int]:
        """Canonical unread mapping {user_id: count} for every participant."""
        return dict(self.memberships.values_list("user_id", "unread_count"))

    @property
    def participant_ids(self) -> list[int]:
        return list(self.memberships.values_list("user_id", flat=True))

    @property
    def admin_ids(self) -> list[int]:
        return list(
            self.memberships.filter(is_admin=True).values_list("user_id", flat=True)
        )

    def get_membership(self, user_id: int) -> Membership | None:
        return self.memberships.filter(user_id=user_id).first()


class Membership(models.Model):
    """
    A user's participation in a group.

    Fields:
        group: The group
        user: The participant
        is_admin: Whether the participant administers the group
        unread_count: Messages from others the user has not seen yet
        joined_at: When the user joined; earliest-joined is promoted when
            the last admin leaves

    Constraints:
        - One membership per (group, user)
        - unread_count >= 0
    """

    group = models.ForeignKey(
        GroupChat,
        on_delete=models.CASCADE,
        related_name="memberships",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="group_memberships",
    )

    is_admin = models.BooleanField(default=False)

    unread_count = models.PositiveIntegerField(default=0)

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "chat_membership"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "user"],
                name="unique_group_membership",
            ),
            models.CheckConstraint(
                condition=Q(unread_count__gte=0),
                name="membership_unread_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=["group", "is_admin"],
                name="chat_member_group_admin_idx",
            ),
        ]

    def __str__(self) -> str:
        role = " (admin)" if self.is_admin else ""
        return f"Membership: {self.user_id} in {self.group_id}{role}"


class JoinRequest(models.Model):
    """A pending request by a non-participant to join a group."""

    group = models.ForeignKey(
        GroupChat,
        on_delete=models.CASCADE,
        related_name="join_requests",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="group_join_requests",
    )

    message = models.CharField(max_length=500, blank=True, default="")

    requested_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "chat_join_request"
        ordering = ["requested_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "user"],
                name="unique_pending_join_request",
            ),
        ]

    def __str__(self) -> str:
        return f"JoinRequest: {self.user_id} -> {self.group_id}"


@dataclass(frozen=True)
class ReplySnapshot:
    """
    Immutable copy of the replied-to message, captured when the reply is sent.

    Later edits of the original do not change the snapshot.
    """

    message_id: int
    sender_id: int | None
    sender_username: str
    content: str
    original_created_at: str
    attachments: list[dict] = field(default_factory=list)

    @classmethod
    def from_message(cls, message: Message) -> ReplySnapshot:
        created_at: datetime = message.created_at
        return cls(
            message_id=message.pk,
            sender_id=message.sender_id,
            sender_username=message.sender.username if message.sender else "",
            content=message.content[: MESSAGE_CONFIG.REPLY_PREVIEW_LENGTH],
            original_created_at=created_at.isoformat(),
            attachments=[
                {
                    "url": attachment.url,
                    "file_type": attachment.file_type,
                    "thumbnail_url": attachment.thumbnail_url,
                }
                for attachment in message.attachments.all()
            ],
        )

    @classmethod
    def from_dict(cls, data: dict) -> ReplySnapshot:
        return cls(
            message_id=data["message_id"],
            sender_id=data.get("sender_id"),
            sender_username=data.get("sender_username", ""),
            content=data.get("content", ""),
            original_created_at=data.get("original_created_at", ""),
            attachments=list(data.get("attachments", [])),
        )

    def to_dict(self) -> dict:
        return asdict(self)


class Message(BaseModel):
    """
    A message within a group.

    Fields:
        group: Group the message belongs to
        sender: Author (None if the account was deleted)
        content: Text; may be empty when attachments exist
        edited: Whether the sender changed the content after sending
        reply_to: ReplySnapshot.to_dict() of the replied-to message, or None
        is_read: True once any participant other than the sender has seen it
        seen_by: Participants (other than the sender) who have seen it
        deleted_for: Users who hid the message from their own view

    Relationships:
        attachments: Ordered MessageAttachment rows
        reactions: MessageReaction rows
    """

    group = models.ForeignKey(
        GroupChat,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Group this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="group_messages",
        help_text="User who sent this message",
    )

    content = models.TextField(
        blank=True,
        default="",
        help_text="Message text (may be empty for attachment-only messages)",
    )

    edited = models.BooleanField(default=False)

    reply_to = models.JSONField(
        null=True,
        blank=True,
        help_text="Snapshot of the replied-to message taken at send time",
    )

    is_read = models.BooleanField(default=False)

    seen_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="seen_group_messages",
    )

    deleted_for = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="hidden_group_messages",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["group", "created_at", "id"],
                name="chat_msg_group_created_idx",
            ),
            models.Index(
                fields=["sender", "-created_at"],
                name="chat_msg_sender_idx",
            ),
        ]

    def __str__(self) -> str:
        content_preview = (
            self.content[:50] + "..." if len(self.content) > 50 else self.content
        )
        return f"User {self.sender_id}: {content_preview}"

    @property
    def reply_snapshot(self) -> ReplySnapshot | None:
        if not self.reply_to:
            return None
        return ReplySnapshot.from_dict(self.reply_to)


class MessageAttachment(models.Model):
    """
    A stored file attached to a message.

    Attachments keep their upload order through `position`.
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="attachments",
    )

    position = models.PositiveSmallIntegerField()

    url = models.CharField(max_length=1000)

    storage_path = models.CharField(
        max_length=500,
        help_text="Path inside the storage backend, used for deletion",
    )

    file_type = models.CharField(
        max_length=10,
        choices=FileType.choices,
        default=FileType.OTHER,
    )

    file_name = models.CharField(max_length=255)

    file_size = models.PositiveBigIntegerField(default=0)

    thumbnail_url = models.CharField(max_length=1000, blank=True, default="")

    duration = models.FloatField(null=True, blank=True)

    width = models.PositiveIntegerField(null=True, blank=True)

    height = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = "chat_message_attachment"
        ordering = ["message_id", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "position"],
                name="unique_attachment_position",
            ),
        ]

    def __str__(self) -> str:
        return f"Attachment {self.position} of message {self.message_id}: {self.file_name}"


class MessageReaction(models.Model):
    """
    A user's reaction to a message.

    A user has at most one reaction per message; reacting again replaces it.
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="group_message_reactions",
    )

    emoji = models.CharField(max_length=16)

    created_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "chat_message_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_reaction_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} reacted {self.emoji} to {self.message_id}"
