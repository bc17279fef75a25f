"""
WSGI entry point for the case booking backend.

Used by gunicorn/uwsgi for plain HTTP deployments; WebSocket traffic is
served by ``casebooking.asgi``.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'casebooking.settings')

application = get_wsgi_application()
