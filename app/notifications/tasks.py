"""
Celery tasks for push notification delivery.

Tasks:
    send_push_notification: Deliver one notification to all of a user's active devices

Design:
    - Tasks receive plain ids/strings so they serialize cleanly
    - Permanent provider errors deactivate the token and are not retried
    - Transient provider errors retry with backoff, only for the tokens
      that failed, so devices that already got the notification are not
      notified twice

Usage:
    from notifications.tasks import send_push_notification

    send_push_notification.delay(user_id, "Group Update", "A group was deleted", {})
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.models import DeviceToken
from notifications.providers import DeliveryError, get_push_provider

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(DeliveryError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_push_notification(
    self,
    user_id: int,
    title: str,
    body: str,
    data: dict | None = None,
    tokens: list[str] | None = None,
) -> int:
    """
    Send a push notification to a user's devices.

    Flow:
        1. Load the user's active device tokens (or the subset being retried)
        2. Send to each token through the configured provider
        3. On permanent error: deactivate that token
        4. On transient error: retry later for the failed tokens only

    Args:
        user_id: Recipient user id
        title: Notification title
        body: Notification body
        data: Extra payload for the client app
        tokens: Restrict delivery to these tokens (set on retries)

    Returns:
        Number of devices the notification was sent to

    Raises:
        DeliveryError: On transient failure (triggers retry)
    """
    devices = DeviceToken.objects.active().for_user(user_id)
    if tokens is not None:
        devices = devices.filter(token__in=tokens)
    devices = list(devices)

    if not devices:
        logger.debug(f"No active device tokens for user {user_id}, skipping push")
        return 0

    provider = get_push_provider()
    sent = 0
    retry_tokens: list[str] = []
    last_error: DeliveryError | None = None

    for device in devices:
        try:
            provider.send(device.token, title, body, data or {})
            sent += 1
        except DeliveryError as e:
            if e.is_permanent:
                device.deactivate()
                logger.warning(
                    f"Push token {device.pk} for user {user_id} deactivated: "
                    f"{e.code} - {e}"
                )
            else:
                retry_tokens.append(device.token)
                last_error = e
                logger.warning(
                    f"Push to token {device.pk} for user {user_id} failed: "
                    f"{e.code} - {e}, will retry"
                )

    logger.info(f"Push sent to {sent}/{len(devices)} devices of user {user_id}")

    if retry_tokens:
        raise self.retry(
            exc=last_error,
            countdown=30 * 2 ** self.request.retries,
            kwargs={
                "user_id": user_id,
                "title": title,
                "body": body,
                "data": data,
                "tokens": retry_tokens,
            },
        )

    return sent
