"""
URL configuration for notifications API.

Routes:
    /devices/      - Register (POST) / unregister (DELETE) a device token
    /preferences/  - Get (GET) / set (PUT) group chat push level
"""

from django.urls import path

from notifications.views import DeviceTokenView, NotificationPreferenceView

app_name = "notifications"

urlpatterns = [
    path("devices/", DeviceTokenView.as_view(), name="devices"),
    path("preferences/", NotificationPreferenceView.as_view(), name="preferences"),
]
