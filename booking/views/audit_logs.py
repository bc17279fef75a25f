from datetime import datetime, time

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.models import AuditLog
from booking.permissions import IsAdminRole
from booking.serializers.settings import AuditQuerySerializer
from booking.services.audit import format_entry


def _day_bound(d, t):
    return timezone.make_aware(datetime.combine(d, t))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_logs(request):
    """Newest first.  Filters: category, userId, action, country, dateFrom, dateTo."""
    q = AuditQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = AuditLog.objects.all()
    if vd.get('category'):
        qs = qs.filter(category=vd['category'])
    if vd.get('userId'):
        qs = qs.filter(user_id=vd['userId'])
    if vd.get('action'):
        qs = qs.filter(action__icontains=vd['action'])
    if vd.get('country'):
        qs = qs.filter(country=vd['country'])
    if vd.get('dateFrom'):
        qs = qs.filter(timestamp__gte=_day_bound(vd['dateFrom'], time.min))
    if vd.get('dateTo'):
        qs = qs.filter(timestamp__lte=_day_bound(vd['dateTo'], time.max))

    total = qs.count()
    page = vd.get('page') or 1
    page_size = vd.get('pageSize') or 50
    start = (page - 1) * page_size
    items = qs.order_by('-timestamp', '-id')[start:start + page_size]
    return Response({
        'ok': True,
        'data': [format_entry(e) for e in items],
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })
