"""
Django admin configuration for notification models.

Registers:
- DeviceToken
- NotificationPreference
"""

from django.contrib import admin

from notifications.models import DeviceToken, NotificationPreference


@admin.register(DeviceToken)
class DeviceTokenAdmin(admin.ModelAdmin):
    """
    Admin configuration for DeviceToken.

    Support staff can deactivate tokens that keep failing.
    """

    list_display = ["id", "user", "platform", "is_active", "created_at"]
    list_filter = ["platform", "is_active"]
    search_fields = ["user__email", "user__username", "token"]
    raw_id_fields = ["user"]
    readonly_fields = ["created_at", "updated_at"]
    actions = ["deactivate_tokens"]

    @admin.action(description="Deactivate selected tokens")
    def deactivate_tokens(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} token(s) deactivated.")


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ["user", "group_chats", "updated_at"]
    list_filter = ["group_chats"]
    search_fields = ["user__email", "user__username"]
    raw_id_fields = ["user"]
