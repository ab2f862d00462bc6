from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Users, presence and JWT endpoints."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
    verbose_name = "Users"
