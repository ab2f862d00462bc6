"""
Chat application configuration.

This app provides group chats with:
- Admin-managed membership, join requests and invite links
- Per-group send and media permissions
- Messages with attachments, reply snapshots and reactions
- Per-participant unread counters and read receipts
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Group Chat"
