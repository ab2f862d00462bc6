"""
Realtime delivery over the Channels layer.

Every websocket session joins the private room "user_<id>" (see
consumers.UserEventConsumer). Emitting an event sends it to that room,
which reaches all of the user's open sessions.

The gateway class is chosen by the CHAT_REALTIME_GATEWAY setting.
"""

from __future__ import annotations

import logging
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils.module_loading import import_string

from chat.constants import PRESENCE_CONFIG

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    """Channel layer group name of a user's private room."""
    return f"user_{user_id}"


def group_room(group_id: int) -> str:
    """Channel layer group name for typing indicators in a group."""
    return f"group_{group_id}"


class ChannelLayerGateway:
    """RealtimeGateway backed by the configured channel layer."""

    def __init__(self, channel_layer=None):
        self.channel_layer = channel_layer or get_channel_layer()

    def emit(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        async_to_sync(self.channel_layer.group_send)(
            user_room(user_id),
            {"type": "chat.event", "event": event, "payload": payload},
        )

    def is_online(self, user_id: int) -> bool:
        return (
            get_user_model()
            .objects.filter(pk=user_id, is_online=True)
            .exists()
        )


class ConnectionCounter:
    """
    Count open websocket sessions per user in the Django cache.

    A user is online while at least one session is open, so closing one
    tab must not mark them offline. Counters expire after
    PRESENCE_CONFIG.CONNECTION_TTL_SECONDS so a crashed worker that never
    ran disconnect cannot pin a user online forever.

    Usage:
        if ConnectionCounter.connect(user.id) == 1:
            ...  # first session
        if ConnectionCounter.disconnect(user.id) == 0:
            ...  # last session closed
    """

    @staticmethod
    def _key(user_id: int) -> str:
        return f"{PRESENCE_CONFIG.KEY_PREFIX_CONNECTIONS}:{user_id}"

    @classmethod
    def connect(cls, user_id: int) -> int:
        """Register a session and return the number now open."""
        key = cls._key(user_id)
        ttl = PRESENCE_CONFIG.CONNECTION_TTL_SECONDS
        cache.add(key, 0, ttl)
        try:
            count = cache.incr(key)
        except ValueError:
            # Expired between add and incr
            cache.set(key, 1, ttl)
            count = 1
        cache.touch(key, ttl)
        return count

    @classmethod
    def disconnect(cls, user_id: int) -> int:
        """Unregister a session and return the number still open."""
        key = cls._key(user_id)
        try:
            remaining = cache.decr(key)
        except ValueError:
            return 0
        if remaining <= 0:
            cache.delete(key)
            return 0
        return remaining

    @classmethod
    def count(cls, user_id: int) -> int:
        return cache.get(cls._key(user_id), 0)


def get_realtime_gateway():
    """Instantiate the gateway named by settings.CHAT_REALTIME_GATEWAY."""
    path = getattr(
        settings, "CHAT_REALTIME_GATEWAY", "chat.realtime.ChannelLayerGateway"
    )
    return import_string(path)()
