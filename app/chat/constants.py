"""
Constants and configuration for the group chat module.

This module centralizes configuration values for:
- Message operations (content limits, reply previews, push previews)
- Attachment handling (count limit, storage location)
- Reaction management (emoji restrictions)
- Invite links (token size, expiry bounds)
- Realtime event names and push wording

Import example:
    from chat.constants import MESSAGE_CONFIG, GroupEvent
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters

    # Characters of the replied-to message kept in a reply snapshot
    REPLY_PREVIEW_LENGTH: Final[int] = 200

    # Characters of the message shown in a push body
    PUSH_PREVIEW_LENGTH: Final[int] = 50

    # Messages embedded in the group detail response
    DETAIL_PAGE_SIZE: Final[int] = 20


# =============================================================================
# Attachment Configuration
# =============================================================================


class ATTACHMENT_CONFIG:
    """Configuration for message attachments."""

    # Limits
    MAX_ATTACHMENTS_PER_MESSAGE: Final[int] = 10

    # Storage prefix; files land under <prefix>/<group_id>/<random>_<name>
    STORAGE_PREFIX: Final[str] = "chat_attachments"

    # content_type major part -> MessageAttachment.file_type
    MIME_FILE_TYPES: Final[dict] = {
        "image": "image",
        "video": "video",
        "audio": "audio",
        "application": "document",
        "text": "document",
    }


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # A single emoji may be several code points (skin tones, ZWJ sequences)
    MAX_EMOJI_LENGTH: Final[int] = 16


# =============================================================================
# Invite Link Configuration
# =============================================================================


class INVITE_CONFIG:
    """Configuration for invite links."""

    # secrets.token_hex(32) -> 64 hex characters
    TOKEN_BYTES: Final[int] = 32

    # Upper bound for expires_in_hours (one year)
    MAX_EXPIRY_HOURS: Final[int] = 24 * 365


class PRESENCE_CONFIG:
    """Configuration for websocket presence tracking."""

    # Open-socket counter per user; stale after a day without connects
    CONNECTION_TTL_SECONDS: Final[int] = 24 * 60 * 60

    # Cache key prefix
    KEY_PREFIX_CONNECTIONS: Final[str] = "presence:connections"


# =============================================================================
# Realtime Events
# =============================================================================


class GroupEvent:
    """Event names emitted on a user's private realtime room."""

    UPDATED = "group.updated"
    ADDED = "group.added"
    REMOVED = "group.removed"
    LEFT = "group.left"
    DELETED = "group.deleted"
    JOIN_REQUESTED = "group.join_requested"
    JOIN_APPROVED = "group.join_approved"
    JOIN_REJECTED = "group.join_rejected"
    MESSAGE_RECEIVED = "message.received"
    MESSAGE_READ = "message.read"


# =============================================================================
# Push Wording
# =============================================================================


class PUSH_TEXT:
    """Titles and bodies for lifecycle pushes."""

    LIFECYCLE_TITLE: Final[str] = "Group Update"
    UPDATED: Final[str] = "Group details were updated"
    ADDED: Final[str] = 'You were added to group "{name}"'
    REMOVED: Final[str] = "You were removed from a group"
    DELETED: Final[str] = "A group was deleted"
    JOIN_REQUESTED: Final[str] = "New join request from {username}"
    JOIN_APPROVED: Final[str] = 'Your request to join "{name}" was approved'
    JOIN_REJECTED: Final[str] = 'Your request to join "{name}" was declined'
    SENT_FILE: Final[str] = "{sender} sent a file"
    MESSAGE_PUSH_TYPE: Final[str] = "group_message"
