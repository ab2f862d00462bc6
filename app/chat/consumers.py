"""
WebSocket consumer for the group chat application.

One connection per user session carries events for every group the user
is in. Server-side fan-out (chat.fanout) reaches the session through the
private room "user_<id>".

Consumers:
    UserEventConsumer: A user's realtime session

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"].
    Anonymous connections are closed with code 4001.

Channel Groups:
    user_<id>: private room, joined on connect
    group_<id>: typing indicators, joined on request (participants only)

Message Types (from client):
    - join_group / leave_group: {"type": "join_group", "chat_id": 1}
    - typing / stop_typing: {"type": "typing", "chat_id": 1}
    - ping

Message Types (to client):
    - {"event": "<name>", "payload": {...}} for server events
    - {"type": "typing" | "stop_typing", "chat_id", "user_id", "username"}
    - {"type": "pong"}
    - {"type": "error", "message": "..."}
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.models import Membership
from chat.realtime import ConnectionCounter, group_room, user_room

logger = logging.getLogger(__name__)


class UserEventConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for a user's group chat events.

    Handles:
        - Presence (online on first connect, offline + last_seen when the
          user's last open session disconnects)
        - Forwarding fan-out events from the private room
        - Typing indicators in group rooms

    Attributes:
        user: Authenticated user (after connect)
        group_rooms: Group ids whose typing room this session joined
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.group_rooms: set[int] = set()

    async def connect(self):
        user = self.scope.get("user")

        if not user or not user.is_authenticated:
            logger.warning("Rejected unauthenticated websocket connection")
            await self.close(code=4001)
            return

        self.user = user
        await self.channel_layer.group_add(user_room(user.id), self.channel_name)

        await self._set_online(True)

        subprotocol = "jwt" if "jwt" in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)
        logger.info(f"User {user.id} connected")

    async def disconnect(self, close_code):
        if self.user is None:
            return

        for group_id in list(self.group_rooms):
            await self.channel_layer.group_discard(group_room(group_id), self.channel_name)
        self.group_rooms.clear()

        await self.channel_layer.group_discard(user_room(self.user.id), self.channel_name)
        await self._set_online(False)
        logger.info(f"User {self.user.id} disconnected ({close_code})")

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming client messages.

        Expected format:
            {"type": "join_group", "chat_id": 12}
            {"type": "typing", "chat_id": 12}
            {"type": "ping"}
        """
        message_type = content.get("type")

        if message_type == "ping":
            await self.send_json({"type": "pong"})
        elif message_type in ("join_group", "leave_group", "typing", "stop_typing"):
            group_id = self._chat_id(content)
            if group_id is None:
                await self._error("chat_id is required")
                return
            handler = getattr(self, f"_handle_{message_type}")
            await handler(group_id)
        else:
            await self._error(f"Unknown message type: {message_type}")

    async def _handle_join_group(self, group_id: int):
        if not await self._is_participant(group_id):
            await self._error("Group chat not found or you're not a participant")
            return
        await self.channel_layer.group_add(group_room(group_id), self.channel_name)
        self.group_rooms.add(group_id)

    async def _handle_leave_group(self, group_id: int):
        await self.channel_layer.group_discard(group_room(group_id), self.channel_name)
        self.group_rooms.discard(group_id)

    async def _handle_typing(self, group_id: int):
        await self._broadcast_typing(group_id, "typing")

    async def _handle_stop_typing(self, group_id: int):
        await self._broadcast_typing(group_id, "stop_typing")

    async def _broadcast_typing(self, group_id: int, kind: str):
        if group_id not in self.group_rooms:
            await self._error("Join the group before sending typing indicators")
            return
        await self.channel_layer.group_send(
            group_room(group_id),
            {
                "type": "chat.typing",
                "kind": kind,
                "chat_id": group_id,
                "user_id": self.user.id,
                "username": self.user.username,
            },
        )

    # -------------------------------------------------------------------------
    # Channel layer handlers
    # -------------------------------------------------------------------------

    async def chat_event(self, event):
        """Forward a fan-out event (see chat.realtime.ChannelLayerGateway)."""
        await self.send_json({"event": event["event"], "payload": event["payload"]})

    async def chat_typing(self, event):
        """Send a typing indicator to the client (except the typist)."""
        if event["user_id"] == self.user.id:
            return
        await self.send_json(
            {
                "type": event["kind"],
                "chat_id": event["chat_id"],
                "user_id": event["user_id"],
                "username": event["username"],
            }
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _chat_id(content) -> int | None:
        try:
            return int(content.get("chat_id"))
        except (TypeError, ValueError):
            return None

    async def _error(self, message: str):
        await self.send_json({"type": "error", "message": message})

    @database_sync_to_async
    def _is_participant(self, group_id: int) -> bool:
        return Membership.objects.filter(group_id=group_id, user_id=self.user.id).exists()

    @database_sync_to_async
    def _set_online(self, online: bool):
        if online:
            ConnectionCounter.connect(self.user.id)
            self.user.mark_online()
        elif ConnectionCounter.disconnect(self.user.id) == 0:
            self.user.mark_offline()
