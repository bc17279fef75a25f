from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.models import Doctor
from booking.permissions import CanManageCatalog
from booking.serializers.catalog import CountryQuerySerializer, DoctorProcedureSerializer, DoctorSerializer
from booking.services.audit import CATEGORY_CODE_TABLE, safe_log_action
from booking.services.catalog import (
    format_doctor, get_sets_for_doctor_procedure, link_procedure, list_doctors, procedures_for_doctor,
    unlink_procedure,
)


def _get_doctor(pk) -> Doctor:
    doctor = Doctor.objects.filter(pk=pk).first()
    if doctor is None:
        raise NotFound('doctor not found')
    return doctor


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def doctors(request):
    if request.method == 'GET':
        q = CountryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = list_doctors(q.validated_data['country'], include_inactive=q.validated_data['includeInactive'])
        return Response({'ok': True, 'data': data})

    s = DoctorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = Doctor.objects.create(
        name=vd['name'], country=vd['country'], specialties=vd['specialties'], is_active=vd['isActive'],
    )
    safe_log_action(user=request.user, action='Doctor Added', category=CATEGORY_CODE_TABLE,
                    target=doctor.name, country=doctor.country)
    return Response({'ok': True, 'data': format_doctor(doctor)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def doctor_detail(request, pk: int):
    doctor = _get_doctor(pk)
    if request.method == 'GET':
        data = format_doctor(doctor)
        data['procedures'] = procedures_for_doctor(doctor.id, doctor.country)
        return Response({'ok': True, 'data': data})
    if request.method == 'DELETE':
        doctor.is_active = False
        doctor.save(update_fields=['is_active', 'updated_at'])
        safe_log_action(user=request.user, action='Doctor Deactivated', category=CATEGORY_CODE_TABLE,
                        target=doctor.name, country=doctor.country)
        return Response({'ok': True})

    s = DoctorSerializer(data={**request.data, 'country': doctor.country})
    s.is_valid(raise_exception=True)
    doctor.name = s.validated_data['name']
    doctor.specialties = s.validated_data['specialties']
    doctor.is_active = s.validated_data['isActive']
    doctor.save()
    return Response({'ok': True, 'data': format_doctor(doctor)})


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, CanManageCatalog])
def doctor_procedures(request, pk: int):
    """List, link or unlink the procedure types a doctor performs."""
    doctor = _get_doctor(pk)
    if request.method != 'GET':
        s = DoctorProcedureSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        name = s.validated_data['procedureType'].strip()
        with transaction.atomic():
            if request.method == 'POST':
                link_procedure(doctor, name)
                action = 'Procedure Linked'
            else:
                unlink_procedure(doctor, name)
                action = 'Procedure Unlinked'
        safe_log_action(user=request.user, action=action, category=CATEGORY_CODE_TABLE,
                        target=doctor.name, details=name, country=doctor.country)
    return Response({'ok': True, 'data': procedures_for_doctor(doctor.id, doctor.country)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_procedure_sets(request, pk: int):
    """Sets and implant boxes for ``?procedureType=`` performed by this doctor."""
    doctor = _get_doctor(pk)
    procedure_type = (request.query_params.get('procedureType') or '').strip()
    if not procedure_type:
        return Response({'ok': False, 'error': {'code': 'invalid', 'message': 'procedureType is required'}},
                        status=400)
    return Response({'ok': True, 'data': get_sets_for_doctor_procedure(doctor.id, procedure_type, doctor.country)})
