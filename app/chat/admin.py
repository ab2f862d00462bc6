"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Group management with member inline
- Join request review
- Message moderation
"""

from django.contrib import admin

from chat.models import GroupChat, JoinRequest, Membership, Message, MessageAttachment


class MembershipInline(admin.TabularInline):
    """Inline display of members in group admin."""

    model = Membership
    extra = 0
    readonly_fields = ["joined_at", "unread_count"]
    raw_id_fields = ["user"]


class MessageAttachmentInline(admin.TabularInline):
    model = MessageAttachment
    extra = 0
    readonly_fields = [
        "position",
        "url",
        "storage_path",
        "file_type",
        "file_name",
        "file_size",
    ]


@admin.register(GroupChat)
class GroupChatAdmin(admin.ModelAdmin):
    """Admin interface for GroupChat model."""

    list_display = [
        "id",
        "name",
        "created_by",
        "send_messages_permission",
        "join_by_link",
        "last_activity",
        "created_at",
    ]
    list_filter = ["send_messages_permission", "send_media_permission", "join_by_link"]
    search_fields = ["name", "id"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "last_activity",
        "last_message",
        "invite_link_token",
    ]
    raw_id_fields = ["created_by"]
    inlines = [MembershipInline]
    ordering = ["-last_activity"]


@admin.register(JoinRequest)
class JoinRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "group", "user", "requested_at"]
    search_fields = ["group__name", "user__username"]
    raw_id_fields = ["group", "user"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "group", "sender", "content_preview", "edited", "created_at"]
    list_filter = ["edited", "created_at"]
    search_fields = ["content", "sender__username", "group__name"]
    readonly_fields = ["created_at", "updated_at", "reply_to"]
    raw_id_fields = ["group", "sender"]
    inlines = [MessageAttachmentInline]

    @admin.display(description="Content")
    def content_preview(self, obj: Message) -> str:
        return obj.content[:50] + ("..." if len(obj.content) > 50 else "")
