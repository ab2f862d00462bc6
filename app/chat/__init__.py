"""
Chat app for group messaging.

This app handles:
- Group chats and their membership
- Message sending and history
- Realtime fan-out with push fallback

Related apps:
    - authentication: User model for participants
    - notifications: Device tokens, preferences and push delivery

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import GroupLifecycleService, MessageService

    group = GroupLifecycleService().create_group(
        creator=user, name="Book club", participant_ids=[2, 3]
    ).data

    MessageService().send_message(group.id, user, content="Hello!")
"""
