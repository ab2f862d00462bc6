"""
Protocol definitions for the delivery capabilities the chat core calls into.

Protocols define contracts that concrete adapters must fulfill, enabling:
- Duck typing with static type checking
- Swapping the implementation through settings (dotted paths)
- Easy fakes in tests

Available Protocols:
    RealtimeGateway: Push an event to a connected user's sockets
    PushProvider: Deliver a push notification to one device token

Usage:
    from core.protocols import RealtimeGateway

    def announce(realtime: RealtimeGateway, user_id: int) -> None:
        if realtime.is_online(user_id):
            realtime.emit(user_id, "group.updated", {"chat_id": 1})

Note:
    - Concrete implementations live in chat.realtime and notifications.providers
    - @runtime_checkable allows isinstance() checks in tests
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class RealtimeGateway(Protocol):
    """
    Protocol for the realtime transport.

    Example:
        class ChannelLayerGateway:
            def emit(self, user_id, event, payload): ...
            def is_online(self, user_id): ...
    """

    def emit(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        """
        Send an event to every live session of a user.

        Args:
            user_id: Recipient
            event: Event name, e.g. "message.received"
            payload: JSON-serializable body
        """
        ...

    def is_online(self, user_id: int) -> bool:
        """Return True if the user has at least one live session."""
        ...


@runtime_checkable
class PushProvider(Protocol):
    """
    Protocol for push notification providers.

    Implementations raise notifications.providers.DeliveryError on failure,
    flagging whether the token should be given up on.
    """

    def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> str:
        """
        Deliver one notification to one device.

        Args:
            token: Device registration token
            title: Notification title
            body: Notification body
            data: Extra key/value payload for the client app

        Returns:
            Provider message id
        """
        ...
