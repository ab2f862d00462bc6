"""
ASGI config for the group chat service.

Exposes the ASGI callable as a module-level variable named `application`.
Uvicorn serves it:
- HTTP requests via Django
- WebSocket connections via Django Channels (/ws/chat/)

WebSocket clients authenticate with a JWT access token, either as
"?token=<jwt>" or as the subprotocol pair ["jwt", "<jwt>"].
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django before importing anything that touches models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # Origin check, then JWT auth, then routing to the consumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
