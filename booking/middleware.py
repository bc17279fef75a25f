import logging

from django.http import JsonResponse
from rest_framework.exceptions import APIException
from rest_framework.request import Request
from rest_framework.settings import api_settings

from booking.services.system_settings import is_maintenance_mode

logger = logging.getLogger(__name__)


def _api_user(request):
    """Resolve the caller the way the API views will (token or JWT)."""
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    drf_request = Request(request, authenticators=[cls() for cls in api_settings.DEFAULT_AUTHENTICATION_CLASSES])
    try:
        return drf_request.user
    except APIException:
        return None


class MaintenanceModeMiddleware:
    """Answer 503 on the API while maintenance mode is switched on.

    Admins, the auth endpoints and the settings endpoints stay reachable
    so that maintenance can be switched off again.
    """
    EXEMPT_PREFIXES = ('/api/auth/', '/api/settings', '/api/docs', '/api/redoc', '/api/schema.json')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if path.startswith('/api/') and not path.startswith(self.EXEMPT_PREFIXES) and is_maintenance_mode():
            user = _api_user(request)
            if not (user is not None and user.is_authenticated and getattr(user, 'role', '') == 'admin'):
                logger.info("Request rejected during maintenance", extra={'path': path})
                return JsonResponse(
                    {'ok': False, 'error': {'code': 'maintenance', 'message': 'The system is under maintenance.'}},
                    status=503,
                )
        return self.get_response(request)
