"""
Django admin configuration for chat users.

Besides the usual account fields, the admin exposes presence so support
staff can see who the websocket layer currently considers online, and
clear flags left behind by a crashed worker.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "is_online", "last_seen", "is_active")
    list_filter = ("is_online", "is_active", "is_staff")
    search_fields = ("username", "email")
    ordering = ("username",)
    readonly_fields = ("date_joined", "last_login", "last_seen")
    actions = ["reset_presence"]

    fieldsets = (
        (None, {"fields": ("username", "email", "password")}),
        ("Chat", {"fields": ("avatar", "is_online", "last_seen")}),
        (
            "Access",
            {
                "fields": (
                    "email_verified",
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        ("Dates", {"fields": ("date_joined", "last_login")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "email", "password1", "password2"),
            },
        ),
    )

    @admin.action(description="Mark selected users offline")
    def reset_presence(self, request, queryset):
        for user in queryset.filter(is_online=True):
            user.mark_offline()
