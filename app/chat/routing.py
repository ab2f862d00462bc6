"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - A user's event stream (all groups)

Authentication:
    JWT token passed as ?token=<jwt_access_token> or as the subprotocol
    pair "jwt, <token>". JWTAuthMiddleware attaches the user to the scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.UserEventConsumer.as_asgi()),
]
