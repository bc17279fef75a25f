"""
ASGI entrypoint: Django for HTTP, Channels for the ``ws/cases/`` feed.

Settings are configured and Django is set up before the booking routes
are imported, since the consumers pull in models.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "casebooking.settings")

import django  # noqa: E402

django.setup()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

from booking.realtime.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http": get_asgi_application(),
    "websocket": AllowedHostsOriginValidator(AuthMiddlewareStack(URLRouter(websocket_urlpatterns))),
})
