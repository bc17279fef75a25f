from datetime import timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.services.cases import visible_countries
from booking.services.usage import usage_for_range


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def daily_usage(request):
    """?country=&dateFrom=&dateTo=&department=  (defaults to the coming week)."""
    country = (request.query_params.get('country') or '').strip()
    if not country:
        return Response({'ok': False, 'error': {'code': 'invalid', 'message': 'country is required'}}, status=400)
    countries = visible_countries(request.user)
    if countries is not None and country not in countries:
        return Response({'ok': False, 'error': {'code': 'permission_denied', 'message': 'No access to this country.'}},
                        status=403)
    start = parse_date(request.query_params.get('dateFrom') or '') or timezone.localdate()
    end = parse_date(request.query_params.get('dateTo') or '') or start + timedelta(days=7)
    department = request.query_params.get('department') or None
    return Response({'ok': True, 'data': usage_for_range(country, start, end, department)})
