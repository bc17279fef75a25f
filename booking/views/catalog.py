"""
Procedure types, surgery sets, implant boxes and their assignment to
doctor+procedure combinations.
"""
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.models import ImplantBox, ProcedureType, SurgerySet
from booking.permissions import CanManageCatalog
from booking.serializers.catalog import (
    CatalogItemSerializer, CountryQuerySerializer, ProcedureTypeSerializer, SetAssignmentSerializer,
)
from booking.services.audit import CATEGORY_CODE_TABLE, safe_log_action
from booking.services.catalog import assign_item, format_item, list_procedure_types, unassign_item

DUPLICATE = {'ok': False, 'error': {'code': 'duplicate', 'message': 'An item with this name already exists.'}}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def procedure_types(request):
    if request.method == 'GET':
        q = CountryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = list_procedure_types(q.validated_data['country'], include_hidden=q.validated_data['includeInactive'])
        return Response({'ok': True, 'data': data})

    s = ProcedureTypeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        with transaction.atomic():
            ptype = ProcedureType.objects.create(country=s.validated_data['country'], name=s.validated_data['name'])
    except IntegrityError:
        return Response(DUPLICATE, status=409)
    safe_log_action(user=request.user, action='Procedure Type Added', category=CATEGORY_CODE_TABLE,
                    target=ptype.name, country=ptype.country)
    return Response({'ok': True, 'data': {'id': ptype.id, 'name': ptype.name, 'isHidden': ptype.is_hidden}},
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def procedure_type_visibility(request, pk: int):
    """Body ``{"hidden": true|false}``; hidden types drop out of the booking pickers."""
    ptype = ProcedureType.objects.filter(pk=pk).first()
    if ptype is None:
        raise NotFound('procedure type not found')
    hidden = request.data.get('hidden')
    if not isinstance(hidden, bool):
        raise ValidationError({'hidden': 'must be a boolean'})
    ptype.is_hidden = hidden
    ptype.save(update_fields=['is_hidden', 'updated_at'])
    safe_log_action(user=request.user, action='Procedure Type Hidden' if hidden else 'Procedure Type Shown',
                    category=CATEGORY_CODE_TABLE, target=ptype.name, country=ptype.country)
    return Response({'ok': True, 'data': {'id': ptype.id, 'name': ptype.name, 'isHidden': ptype.is_hidden}})


def _item_list(request, model):
    if request.method == 'GET':
        q = CountryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = model.objects.filter(country=q.validated_data['country'])
        if not q.validated_data['includeInactive']:
            qs = qs.filter(is_active=True)
        return Response({'ok': True, 'data': [format_item(i) for i in qs.order_by('name')]})

    s = CatalogItemSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        with transaction.atomic():
            item = model.objects.create(
                country=vd['country'], name=vd['name'], description=vd['description'], is_active=vd['isActive'],
            )
    except IntegrityError:
        return Response(DUPLICATE, status=409)
    safe_log_action(user=request.user, action=f'{model._meta.verbose_name.title()} Added',
                    category=CATEGORY_CODE_TABLE, target=item.name, country=item.country)
    return Response({'ok': True, 'data': format_item(item)}, status=status.HTTP_201_CREATED)


def _item_detail(request, model, pk):
    item = model.objects.filter(pk=pk).first()
    if item is None:
        raise NotFound(f'{model._meta.verbose_name} not found')
    if request.method == 'DELETE':
        item.is_active = False
        item.save(update_fields=['is_active', 'updated_at'])
        return Response({'ok': True})

    s = CatalogItemSerializer(data={**request.data, 'country': item.country})
    s.is_valid(raise_exception=True)
    item.name = s.validated_data['name']
    item.description = s.validated_data['description']
    item.is_active = s.validated_data['isActive']
    try:
        with transaction.atomic():
            item.save()
    except IntegrityError:
        return Response(DUPLICATE, status=409)
    return Response({'ok': True, 'data': format_item(item)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def surgery_sets(request):
    return _item_list(request, SurgerySet)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def surgery_set_detail(request, pk: int):
    return _item_detail(request, SurgerySet, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def implant_boxes(request):
    return _item_list(request, ImplantBox)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def implant_box_detail(request, pk: int):
    return _item_detail(request, ImplantBox, pk)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def set_assignments(request):
    """Attach (POST) or detach (DELETE) a set or box for a doctor+procedure."""
    s = SetAssignmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    kwargs = {'surgery_set_id': vd.get('surgerySetId'), 'implant_box_id': vd.get('implantBoxId')}
    if request.method == 'DELETE':
        removed = unassign_item(vd['doctorId'], vd['procedureType'], vd['country'], **kwargs)
        return Response({'ok': True, 'removed': removed})
    try:
        link = assign_item(vd['doctorId'], vd['procedureType'], vd['country'], **kwargs)
    except (SurgerySet.DoesNotExist, ImplantBox.DoesNotExist):
        raise NotFound('item not found in this country')
    except ValueError as e:
        raise ValidationError({'detail': str(e)})
    return Response({'ok': True, 'id': link.id}, status=status.HTTP_201_CREATED)
