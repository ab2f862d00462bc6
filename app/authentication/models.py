"""
Authentication models.

This module defines the user directory consumed by the chat system:
- User: Custom user model with email-based authentication plus the public
  profile fields (username, avatar) and live presence (is_online, last_seen)
  that group chat needs to render senders and pick a delivery channel

Related files:
    - managers.py: Custom user manager for email-based creation
    - chat/consumers.py: Flips is_online/last_seen on websocket connect/disconnect
    - notifications/models.py: Device tokens and notification preferences

Security:
    - User passwords hashed with Django's password hashers
    - Identity issuance (JWT) is handled by rest_framework_simplejwt
"""

import re

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from authentication.managers import UserManager


# Reserved usernames that cannot be used
RESERVED_USERNAMES = frozenset([
    "admin", "administrator", "root", "system", "api", "support",
    "help", "everyone", "here", "channel", "group", "null", "undefined",
    "anonymous", "moderator", "bot", "notification",
])


def validate_username_not_reserved(value):
    """Validate that username is not in the reserved list."""
    if value.lower() in RESERVED_USERNAMES:
        raise ValidationError(
            f"The username '{value}' is reserved and cannot be used."
        )


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not re.match(r"^[a-zA-Z0-9_-]{3,30}$", value):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        username: Public handle shown in chats and matched by @-mentions
        avatar: URL of the profile picture
        email_verified: Whether the user's email has been verified
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        is_online: Whether the user has a live websocket session
        last_seen: When the user's last websocket session ended
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email='user@example.com',
            password='securepassword',
            username='sam_k',
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    username = models.CharField(
        max_length=30,
        unique=True,
        validators=[validate_username_format, validate_username_not_reserved],
        help_text="Public handle used in chats and @-mentions",
    )

    avatar = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the user's profile picture",
    )

    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Presence
    is_online = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the user currently has a live websocket session",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user's last websocket session ended",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"

    # Prompted by createsuperuser in addition to email and password
    REQUIRED_FIELDS = ["username"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    def __str__(self):
        return self.email

    def get_short_name(self):
        """Return the public handle, falling back to the email local part."""
        return self.username or self.email.split("@")[0]

    def mark_online(self):
        """Flag the user as having a live realtime session."""
        User.objects.filter(pk=self.pk).update(is_online=True)
        self.is_online = True

    def mark_offline(self):
        """Flag the user as offline and stamp last_seen."""
        now = timezone.now()
        User.objects.filter(pk=self.pk).update(is_online=False, last_seen=now)
        self.is_online = False
        self.last_seen = now
