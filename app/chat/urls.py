"""
URL configuration for the group chat API.

URL Structure:
    Groups:
        /groups/                              GET, POST
        /groups/discover/                     GET
        /groups/{id}/                         GET, PUT, PATCH, DELETE
        /groups/{id}/add/                     PUT
        /groups/{id}/remove/                  PUT
        /groups/{id}/leave/                   PUT

    Join requests and invite links:
        /groups/{id}/join/                    POST
        /groups/{id}/join/{user_id}/          PUT
        /groups/{id}/requests/                GET
        /groups/{id}/invite-link/             POST, DELETE
        /groups/join/{token}/                 POST

    Messages:
        /groups/{id}/messages/                GET, POST
        /groups/{id}/read/                    POST
        /groups/{id}/messages/{mid}/          PATCH, DELETE
        /groups/{id}/messages/{mid}/seen/     POST
        /groups/{id}/messages/{mid}/reactions/ POST, DELETE

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import GroupMessageViewSet, GroupViewSet, JoinViaLinkView

router = DefaultRouter()
router.register(r"groups", GroupViewSet, basename="group")

app_name = "chat"

urlpatterns = [
    # Must precede the router so "join" is never read as a group id
    path(
        "groups/join/<str:token>/",
        JoinViaLinkView.as_view(),
        name="group-join-link",
    ),
    path(
        "groups/<int:group_pk>/messages/<int:pk>/",
        GroupMessageViewSet.as_view({"patch": "partial_update", "delete": "destroy"}),
        name="group-message-detail",
    ),
    path(
        "groups/<int:group_pk>/messages/<int:pk>/seen/",
        GroupMessageViewSet.as_view({"post": "seen"}),
        name="group-message-seen",
    ),
    path(
        "groups/<int:group_pk>/messages/<int:pk>/reactions/",
        GroupMessageViewSet.as_view({"post": "reactions", "delete": "reactions"}),
        name="group-message-reactions",
    ),
    path("", include(router.urls)),
]
