"""
Notifications app: push delivery for group chat activity.

This app provides:
- DeviceToken model for devices that accept push notifications
- NotificationPreference model for the per-user group chat push level
- Push providers (logging for development, Firebase Cloud Messaging)
- send_push_notification Celery task with permanent/transient error handling
- REST API for registering devices and updating preferences

Usage:
    from notifications.tasks import send_push_notification

    send_push_notification.delay(user.id, "Group Update", "A group was deleted", {})
"""
