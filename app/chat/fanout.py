"""
Notification fan-out for group chat events.

Two halves:
    CeleryNotifier: Called by the services inside their transaction. Registers
        transaction.on_commit callbacks that enqueue the fan-out tasks, so a
        rolled-back mutation never notifies anyone and the request never
        waits on delivery.
    NotificationFanout: Run by the tasks. Per recipient, delivers over the
        realtime gateway when the user is connected, otherwise hands off to
        push if the user has a device and their preference allows it.

Delivery is best effort: every per-recipient failure is logged and skipped.

Usage:
    notifier = CeleryNotifier()
    with transaction.atomic():
        ...
        notifier.group_event([5, 6], GroupEvent.UPDATED, group_payload(group))

    # In a Celery task
    NotificationFanout.from_settings().deliver_message(message_id)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import transaction

from chat.constants import MESSAGE_CONFIG, PUSH_TEXT, GroupEvent
from chat.models import GroupChat, Message
from notifications.models import (
    DeviceToken,
    GroupChatNotificationLevel,
    NotificationPreference,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from core.protocols import RealtimeGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushNotice:
    """Title/body/data of the push sent to offline recipients."""

    title: str
    body: str
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def lifecycle(cls, body: str, group_id: int, event: str) -> PushNotice:
        return cls(
            title=PUSH_TEXT.LIFECYCLE_TITLE,
            body=body,
            data={"chat_id": group_id, "type": event},
        )


def group_payload(group: GroupChat) -> dict[str, Any]:
    """JSON-safe description of a group for realtime events."""
    memberships = list(group.memberships.values_list("user_id", "is_admin"))
    return {
        "chat_id": group.pk,
        "name": group.name,
        "description": group.description,
        "avatar": group.avatar,
        "send_messages_permission": group.send_messages_permission,
        "send_media_permission": group.send_media_permission,
        "join_by_link": group.join_by_link,
        "participant_ids": [user_id for user_id, _ in memberships],
        "admin_ids": [user_id for user_id, is_admin in memberships if is_admin],
        "last_activity": group.last_activity.isoformat() if group.last_activity else None,
    }


def message_push(message: Message) -> PushNotice:
    """Push shown to offline recipients of a new message."""
    sender_name = message.sender.username if message.sender else "Someone"
    content = message.content.strip()
    if content:
        limit = MESSAGE_CONFIG.PUSH_PREVIEW_LENGTH
        preview = content[:limit] + ("..." if len(content) > limit else "")
        body = f"{sender_name}: {preview}"
    else:
        body = PUSH_TEXT.SENT_FILE.format(sender=sender_name)

    return PushNotice(
        title=message.group.name,
        body=body,
        data={
            "chat_id": message.group_id,
            "message_id": message.pk,
            "type": PUSH_TEXT.MESSAGE_PUSH_TYPE,
            "sender_id": message.sender_id,
            "sender_name": sender_name,
        },
    )


def mentions(content: str, username: str) -> bool:
    """True if content contains @username, ignoring case."""
    return bool(username) and f"@{username}".lower() in content.lower()


# =============================================================================
# Scheduling (inside the request transaction)
# =============================================================================


class CeleryNotifier:
    """Schedules fan-out tasks to run after the current transaction commits."""

    def group_event(
        self,
        recipient_ids: Iterable[int],
        event: str,
        payload: dict[str, Any],
        push: PushNotice | None = None,
    ) -> None:
        from chat.tasks import fan_out_group_event

        recipients = sorted(set(recipient_ids))
        if not recipients:
            return
        push_data = push.to_dict() if push else None
        transaction.on_commit(
            lambda: fan_out_group_event.delay(recipients, event, payload, push_data)
        )

    def message_sent(self, message_id: int) -> None:
        from chat.tasks import fan_out_message

        transaction.on_commit(lambda: fan_out_message.delay(message_id))

    def discard_files(self, paths: list[str]) -> None:
        from chat.tasks import delete_attachment_files

        if paths:
            transaction.on_commit(lambda: delete_attachment_files.delay(list(paths)))


# =============================================================================
# Delivery (inside the Celery task)
# =============================================================================


class TaskPushDispatcher:
    """Push capability that enqueues notifications.tasks.send_push_notification."""

    def notify(self, user_id: int, notice: PushNotice) -> None:
        from notifications.tasks import send_push_notification

        send_push_notification.delay(user_id, notice.title, notice.body, notice.data)


class NotificationFanout:
    """
    Delivers one event to many users.

    Args:
        realtime: RealtimeGateway (emit / is_online)
        push: Object with notify(user_id, PushNotice)
    """

    def __init__(self, realtime: RealtimeGateway, push):
        self.realtime = realtime
        self.push = push

    @classmethod
    def from_settings(cls) -> NotificationFanout:
        from chat.realtime import get_realtime_gateway

        return cls(get_realtime_gateway(), TaskPushDispatcher())

    def deliver_group_event(
        self,
        recipient_ids: Iterable[int],
        event: str,
        payload: dict[str, Any],
        push: PushNotice | None = None,
    ) -> dict[str, int]:
        """Deliver a lifecycle event; returns counts per outcome."""
        stats = {"realtime": 0, "push": 0, "skipped": 0, "failed": 0}
        for user_id in recipient_ids:
            outcome = self._deliver(user_id, event, payload, push)
            stats[outcome] += 1

        logger.info(f"Fan-out {event} to {sum(stats.values())} users: {stats}")
        return stats

    def deliver_message(self, message_id: int) -> dict[str, int]:
        """Deliver message.received to every participant except the sender."""
        from chat.serializers import MessageSerializer

        message = (
            Message.objects.select_related("group", "sender")
            .prefetch_related("attachments", "reactions")
            .filter(pk=message_id)
            .first()
        )
        stats = {"realtime": 0, "push": 0, "skipped": 0, "failed": 0}
        if message is None:
            logger.warning(f"Message {message_id} not found, nothing to fan out")
            return stats

        recipient_ids = list(
            message.group.memberships.exclude(user_id=message.sender_id).values_list(
                "user_id", flat=True
            )
        )
        usernames = dict(
            get_user_model()
            .objects.filter(pk__in=recipient_ids)
            .values_list("id", "username")
        )
        payload = {"chat_id": message.group_id, **MessageSerializer(message).data}
        notice = message_push(message)

        for user_id in recipient_ids:
            outcome = self._deliver(
                user_id,
                GroupEvent.MESSAGE_RECEIVED,
                payload,
                notice,
                mention_check=(message.content, usernames.get(user_id, "")),
            )
            stats[outcome] += 1

        logger.info(
            f"Fan-out message {message_id} in group {message.group_id}: {stats}"
        )
        return stats

    def _deliver(
        self,
        user_id: int,
        event: str,
        payload: dict[str, Any],
        push: PushNotice | None,
        mention_check: tuple[str, str] | None = None,
    ) -> str:
        try:
            if self.realtime.is_online(user_id):
                self.realtime.emit(user_id, event, payload)
                return "realtime"

            if push is None:
                return "skipped"

            if not DeviceToken.objects.active().for_user(user_id).exists():
                logger.debug(f"User {user_id} offline without devices, skipping {event}")
                return "skipped"

            level = NotificationPreference.level_for(user_id)
            if level == GroupChatNotificationLevel.NONE:
                logger.debug(f"User {user_id} muted group chats, skipping {event}")
                return "skipped"
            if (
                level == GroupChatNotificationLevel.MENTIONS_ONLY
                and mention_check is not None
                and not mentions(*mention_check)
            ):
                logger.debug(f"User {user_id} not mentioned, skipping {event}")
                return "skipped"

            self.push.notify(user_id, push)
            return "push"
        except Exception:
            logger.exception(f"Failed to deliver {event} to user {user_id}")
            return "failed"
