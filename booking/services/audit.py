import logging
from datetime import timedelta
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from django.utils import timezone

from booking.models import AuditLog, SystemSettings

User = get_user_model()
logger = logging.getLogger(__name__)

CATEGORY_AUTH = 'Authentication'
CATEGORY_CASE = 'Case Management'
CATEGORY_STATUS = 'Status Change'
CATEGORY_CODE_TABLE = 'Code Table'
CATEGORY_EMAIL = 'Email Configuration'
CATEGORY_SYSTEM = 'System'
CATEGORY_USER = 'User Management'


def log_action(*, user: Optional[User], action: str, category: str, target: str = '', details: str = '',
               status: str = 'success', metadata: Optional[Dict[str, Any]] = None,
               country: str = '', department: str = '', ip: Optional[str] = None) -> AuditLog:
    is_user = isinstance(user, User) and getattr(user, 'pk', None)
    return AuditLog.objects.create(
        user=user if is_user else None,
        user_name=user.display_name if is_user else '',
        user_role=getattr(user, 'role', '') if is_user else '',
        action=action,
        category=category,
        target=target or '',
        details=details or '',
        status=status,
        metadata=metadata or {},
        country=country or '',
        department=department or '',
        ip_address=ip,
    )


def safe_log_action(**kwargs) -> Optional[AuditLog]:
    """Write an audit entry; failures are logged and never raised."""
    try:
        return log_action(**kwargs)
    except Exception:
        logger.warning("Audit log write failed", exc_info=True, extra={'action': kwargs.get('action')})
        return None


def purge_expired(now=None) -> int:
    """Delete audit entries older than the configured retention period."""
    now = now or timezone.now()
    days = SystemSettings.load().audit_log_retention
    if not days:
        return 0
    deleted, _ = AuditLog.objects.filter(timestamp__lt=now - timedelta(days=days)).delete()
    return deleted


def format_entry(entry: AuditLog) -> dict:
    return {
        'id': entry.id,
        'timestamp': entry.timestamp.isoformat(),
        'user': entry.user_name,
        'userId': entry.user_id,
        'userRole': entry.user_role,
        'action': entry.action,
        'category': entry.category,
        'target': entry.target,
        'details': entry.details,
        'status': entry.status,
        'metadata': entry.metadata,
        'country': entry.country or None,
        'department': entry.department or None,
        'ipAddress': entry.ip_address,
    }
