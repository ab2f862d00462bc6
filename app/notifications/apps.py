from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """Device tokens, group chat preferences and push delivery."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Push Notifications"
