"""
Root URL configuration for the group chat service.

URL Structure:
    /                              - ReDoc API documentation
    /schema/                       - OpenAPI schema (YAML)
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /api/v1/auth/                  - JWT token pair, refresh, current user
    /api/v1/chat/                  - Group chat endpoints
        groups/                    - Group list/create
        groups/discover/           - All groups with join state
        groups/{id}/               - Group detail/update/delete
        groups/{id}/add|remove|leave/ - Membership
        groups/{id}/join/          - Request to join
        groups/{id}/join/{user}/   - Approve/reject a join request
        groups/{id}/requests/      - Pending join requests
        groups/{id}/invite-link/   - Generate/revoke invite link
        groups/join/{token}/       - Join through an invite link
        groups/{id}/messages/      - Message list/send
        groups/{id}/read/          - Mark group as read
        groups/{id}/messages/{pk}/ - Edit / delete for me
        groups/{id}/messages/{pk}/seen|reactions/
    /api/v1/notifications/         - Device tokens and preferences
    /ws/chat/                      - WebSocket (see config.asgi)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("chat/", include("chat.urls")),
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Group Chat Admin"
admin.site.site_title = "Group Chat Admin"
admin.site.index_title = "Groups, members and messages"
