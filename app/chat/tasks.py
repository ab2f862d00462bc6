"""
Celery tasks for chat app.

This module defines async tasks for:
- Group lifecycle event fan-out
- New message fan-out
- Attachment file cleanup after group deletion or a failed send

Related files:
    - fanout.py: CeleryNotifier (schedules these) and NotificationFanout (runs them)
    - storage.py: AttachmentStorage

Usage:
    from chat.tasks import fan_out_message

    fan_out_message.delay(message_id)

Note:
    The fan-out tasks are not retried automatically: a retry after a partial
    delivery would notify the already-reached users a second time. Push
    sends retry individually in notifications.tasks.
"""

import logging

from celery import shared_task

from chat.fanout import NotificationFanout, PushNotice
from chat.storage import AttachmentStorage, StorageCleanupError

logger = logging.getLogger(__name__)


@shared_task(bind=True, ignore_result=True)
def fan_out_group_event(
    self,
    recipient_ids: list[int],
    event: str,
    payload: dict,
    push: dict | None = None,
) -> dict:
    """
    Deliver a group lifecycle event to each recipient.

    Args:
        recipient_ids: Users to notify
        event: Event name (see chat.constants.GroupEvent)
        payload: Realtime payload
        push: PushNotice.to_dict() for offline users, or None for realtime only

    Returns:
        Delivery counts per outcome
    """
    notice = PushNotice(**push) if push else None
    return NotificationFanout.from_settings().deliver_group_event(
        recipient_ids, event, payload, notice
    )


@shared_task(bind=True, ignore_result=True)
def fan_out_message(self, message_id: int) -> dict:
    """
    Deliver a new message to every participant except the sender.

    Args:
        message_id: ID of the persisted message

    Returns:
        Delivery counts per outcome
    """
    return NotificationFanout.from_settings().deliver_message(message_id)


@shared_task(bind=True, max_retries=3)
def delete_attachment_files(self, paths: list[str]) -> int:
    """
    Remove attachment files from storage.

    Files that fail to delete are retried with backoff; the retry only
    carries the failed paths.

    Args:
        paths: Storage paths (MessageAttachment.storage_path)

    Returns:
        Number of files deleted

    Raises:
        StorageCleanupError: When some files remain (triggers retry)
    """
    failed = AttachmentStorage().delete(paths)
    deleted = len([p for p in paths if p]) - len(failed)
    logger.info(f"Deleted {deleted} attachment file(s)")

    if failed:
        raise self.retry(
            exc=StorageCleanupError(failed),
            countdown=30 * 2 ** self.request.retries,
            args=[failed],
        )

    return deleted
