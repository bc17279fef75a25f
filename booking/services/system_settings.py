import logging
from typing import Any, Dict

from django.core.cache import cache

from booking.models import SystemSettings
from booking.services.audit import CATEGORY_SYSTEM, safe_log_action

logger = logging.getLogger(__name__)

CACHE_KEY = 'system_settings:v1'

# api name -> model field
FIELD_MAP = {
    'appName': 'app_name',
    'maintenanceMode': 'maintenance_mode',
    'cacheTimeout': 'cache_timeout',
    'maxFileSize': 'max_file_size',
    'sessionTimeout': 'session_timeout',
    'passwordComplexity': 'password_complexity',
    'auditLogRetention': 'audit_log_retention',
    'amendmentTimeLimit': 'amendment_time_limit',
    'maxAmendmentsPerCase': 'max_amendments_per_case',
    'emailNotifications': 'email_notifications',
    'defaultTheme': 'default_theme',
    'defaultLanguage': 'default_language',
}


def format_settings(obj: SystemSettings) -> Dict[str, Any]:
    data = {api: getattr(obj, field) for api, field in FIELD_MAP.items()}
    data['updatedAt'] = obj.updated_at.isoformat() if obj.updated_at else None
    return data


def get_settings() -> Dict[str, Any]:
    cached = cache.get(CACHE_KEY)
    if cached:
        return cached
    data = format_settings(SystemSettings.load())
    cache.set(CACHE_KEY, data, data['cacheTimeout'] or 300)
    return data


def update_settings(changes: Dict[str, Any], actor) -> Dict[str, Any]:
    """Apply validated ``changes`` (api names) and return the new settings."""
    obj = SystemSettings.load()
    changed = []
    for api, value in changes.items():
        field = FIELD_MAP.get(api)
        if field and getattr(obj, field) != value:
            setattr(obj, field, value)
            changed.append(api)
    if changed:
        obj.save()
        cache.delete(CACHE_KEY)
        safe_log_action(user=actor, action='Settings Updated', category=CATEGORY_SYSTEM,
                        target='system_settings', details=', '.join(changed))
        logger.info("System settings updated", extra={'fields': changed})
    return format_settings(obj)


def reset_settings(actor) -> Dict[str, Any]:
    SystemSettings.objects.filter(pk=1).delete()
    obj = SystemSettings.load()
    cache.delete(CACHE_KEY)
    safe_log_action(user=actor, action='Settings Reset', category=CATEGORY_SYSTEM,
                    target='system_settings', status='warning')
    return format_settings(obj)


def is_maintenance_mode() -> bool:
    return bool(get_settings().get('maintenanceMode'))
