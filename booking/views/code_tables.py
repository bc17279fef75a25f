"""
Hospitals and departments per country.
"""
from django.db import IntegrityError, transaction
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from booking.models import CodeTable
from booking.permissions import CanManageCatalog
from booking.serializers.catalog import CodeTableSerializer
from booking.services.audit import CATEGORY_CODE_TABLE, safe_log_action
from booking.services.catalog import format_code, list_code_table


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def code_tables(request):
    """GET ?country=&tableType=  |  POST a new entry."""
    if request.method == 'GET':
        country = (request.query_params.get('country') or '').strip()
        table_type = request.query_params.get('tableType') or CodeTable.TYPE_HOSPITALS
        if not country:
            return Response({'ok': False, 'error': {'code': 'invalid', 'message': 'country is required'}}, status=400)
        include_inactive = request.query_params.get('includeInactive') in ('1', 'true', 'True')
        return Response({'ok': True, 'data': list_code_table(country, table_type, include_inactive=include_inactive)})

    s = CodeTableSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        with transaction.atomic():
            entry = CodeTable.objects.create(
                country=vd['country'], table_type=vd['tableType'], code=vd['code'],
                display_name=vd['displayName'], is_active=vd['isActive'],
            )
    except IntegrityError:
        return Response({'ok': False, 'error': {'code': 'duplicate', 'message': 'This entry already exists.'}},
                        status=409)
    safe_log_action(user=request.user, action='Code Added', category=CATEGORY_CODE_TABLE,
                    target=entry.display_name, details=entry.table_type, country=entry.country)
    return Response({'ok': True, 'data': format_code(entry)}, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def code_table_detail(request, pk: int):
    entry = CodeTable.objects.filter(pk=pk).first()
    if entry is None:
        raise NotFound('code table entry not found')
    if request.method == 'DELETE':
        entry.is_active = False
        entry.save(update_fields=['is_active', 'updated_at'])
        safe_log_action(user=request.user, action='Code Deactivated', category=CATEGORY_CODE_TABLE,
                        target=entry.display_name, details=entry.table_type, country=entry.country)
        return Response({'ok': True})

    s = CodeTableSerializer(data={**request.data, 'country': entry.country, 'tableType': entry.table_type})
    s.is_valid(raise_exception=True)
    entry.display_name = s.validated_data['displayName']
    entry.code = s.validated_data['code']
    entry.is_active = s.validated_data['isActive']
    try:
        with transaction.atomic():
            entry.save()
    except IntegrityError:
        return Response({'ok': False, 'error': {'code': 'duplicate', 'message': 'This entry already exists.'}},
                        status=409)
    safe_log_action(user=request.user, action='Code Updated', category=CATEGORY_CODE_TABLE,
                    target=entry.display_name, details=entry.table_type, country=entry.country)
    return Response({'ok': True, 'data': format_code(entry)})
