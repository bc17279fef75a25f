"""
Case booking endpoints.

Listing and reading are scoped to the caller's countries.  Writes go
through the service layer, which raises typed API exceptions that the
project exception handler turns into ``{'ok': False, 'error': ...}``.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.permissions import CanProcessOrders, CanWriteCases, IsAdminRole, can_set_status
from booking.serializers.cases import (
    AmendmentSerializer, CaseCreateSerializer, CaseListQuerySerializer, ProcessOrderSerializer,
    QuantitySerializer, StatusUpdateSerializer,
)
from booking.services.amendments import amend_case
from booking.services.cases import (
    delete_case, format_case, get_case, get_case_quantities, list_cases, save_case_quantities, submit_case,
)
from booking.services.references import generate_case_reference_number
from booking.services.status import process_case_order, update_case_status
from booking.services.usage import recalculate_daily_usage


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanWriteCases])
def cases(request):
    """GET: paginated case list.  POST: book a new case."""
    if request.method == 'GET':
        q = CaseListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        page = q.validated_data.get('page') or 1
        page_size = q.validated_data.get('pageSize') or 20
        data, total = list_cases(request.user, filters=q.to_filters(), page=page, page_size=page_size)
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    s = CaseCreateSerializer(data=request.data, context={'user': request.user})
    s.is_valid(raise_exception=True)
    case = submit_case(s.to_case_data(), request.user, s.validated_data.get('quantities'))
    return Response({'ok': True, 'data': format_case(case, with_history=True)}, status=status.HTTP_201_CREATED)

cases.cls.throttle_scope = 'case_write'


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def case_detail(request, pk: int):
    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            return Response({'ok': False, 'error': {'code': 'permission_denied',
                                                    'message': 'Only administrators can delete cases.'}}, status=403)
        get_case(pk, request.user)
        reference = delete_case(pk, request.user)
        return Response({'ok': True, 'deleted': reference})
    case = get_case(pk, request.user)
    return Response({'ok': True, 'data': format_case(case, with_history=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def case_status(request, pk: int):
    """Move a case to another status the caller's role may set; repeats are accepted and ignored."""
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    get_case(pk, request.user)
    new_status = s.validated_data['status']
    if not can_set_status(request.user, new_status):
        return Response({'ok': False, 'error': {'code': 'permission_denied',
                                                'message': f"Your role cannot move a case to {new_status}."}},
                        status=403)
    entry = update_case_status(
        pk, new_status, request.user,
        details=s.validated_data.get('details'),
        attachments=s.validated_data.get('attachments'),
    )
    case = get_case(pk)
    return Response({'ok': True, 'recorded': entry is not None, 'data': format_case(case)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanProcessOrders])
def case_process(request, pk: int):
    s = ProcessOrderSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    get_case(pk, request.user)
    entry = process_case_order(pk, request.user, s.validated_data['details'])
    return Response({'ok': True, 'recorded': entry is not None, 'data': format_case(get_case(pk))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanWriteCases])
def case_amend(request, pk: int):
    s = AmendmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    get_case(pk, request.user)
    entry = amend_case(pk, s.to_changes(), request.user, reason=s.validated_data.get('reason'))
    return Response({
        'ok': True,
        'amended': entry is not None,
        'changes': entry.changes if entry is not None else [],
        'data': format_case(get_case(pk)),
    })

case_amend.cls.throttle_scope = 'case_write'


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, CanWriteCases])
def case_quantities(request, pk: int):
    case = get_case(pk, request.user)
    if request.method == 'PUT':
        s = QuantitySerializer(data=request.data.get('quantities', []), many=True)
        s.is_valid(raise_exception=True)
        save_case_quantities(case, s.validated_data)
        recalculate_daily_usage(case.date_of_surgery, case.country, case.department)
    return Response({'ok': True, 'data': get_case_quantities(case)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def next_reference(request):
    """Reserve a reference number without booking a case (admin tooling)."""
    country = (request.data.get('country') or '').strip()
    if not country:
        return Response({'ok': False, 'error': {'code': 'invalid', 'message': 'country is required'}}, status=400)
    return Response({'ok': True, 'reference': generate_case_reference_number(country)})

next_reference.cls.throttle_scope = 'case_write'
