import logging

from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def _cache_ok() -> bool:
    try:
        cache.set('healthz:ping', 1, 5)
        return cache.get('healthz:ping') == 1
    except Exception:
        logger.warning("Health check cache round trip failed", exc_info=True)
        return False


def healthz(request):
    """Liveness probe: the database must answer, the cache is reported."""
    try:
        with connections['default'].cursor() as cursor:
            cursor.execute('SELECT 1')
            db_ok = cursor.fetchone() == (1,)
    except DatabaseError as e:
        logger.error("Health check database query failed", exc_info=True)
        return JsonResponse({'ok': False, 'db': False, 'cache': _cache_ok(), 'error': str(e)}, status=503)
    return JsonResponse({'ok': db_ok, 'db': db_ok, 'cache': _cache_ok()}, status=200 if db_ok else 503)
