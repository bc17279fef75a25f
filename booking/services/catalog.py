"""
Per-country booking catalog: hospitals and departments (code tables),
doctors and the procedure types they perform, surgery sets, implant
boxes and the sets/boxes each doctor+procedure combination uses.
"""
from typing import List, Optional

from django.db import transaction

from booking.models import (
    CodeTable, Doctor, DoctorProcedure, DoctorProcedureSet, ImplantBox, ProcedureType, SurgerySet,
)


def list_code_table(country: str, table_type: str, *, include_inactive: bool = False) -> List[dict]:
    qs = CodeTable.objects.filter(country=country, table_type=table_type)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return [format_code(c) for c in qs.order_by('display_name')]


def format_code(c: CodeTable) -> dict:
    return {
        'id': c.id,
        'country': c.country,
        'tableType': c.table_type,
        'code': c.code,
        'displayName': c.display_name,
        'isActive': c.is_active,
    }


def format_doctor(d: Doctor) -> dict:
    return {'id': d.id, 'name': d.name, 'country': d.country, 'specialties': d.specialties, 'isActive': d.is_active}


def format_item(item) -> dict:
    return {
        'id': item.id,
        'country': item.country,
        'name': item.name,
        'description': item.description,
        'isActive': item.is_active,
    }


def list_doctors(country: str, *, include_inactive: bool = False) -> List[dict]:
    qs = Doctor.objects.filter(country=country)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return [format_doctor(d) for d in qs.order_by('name')]


def list_procedure_types(country: str, *, include_hidden: bool = False) -> List[dict]:
    qs = ProcedureType.objects.filter(country=country)
    if not include_hidden:
        qs = qs.filter(is_hidden=False)
    return [{'id': p.id, 'name': p.name, 'isHidden': p.is_hidden} for p in qs.order_by('name')]


def procedures_for_doctor(doctor_id: int, country: str) -> List[str]:
    return list(
        DoctorProcedure.objects.filter(
            doctor_id=doctor_id, doctor__country=country, procedure_type__is_hidden=False,
        ).order_by('procedure_type__name').values_list('procedure_type__name', flat=True)
    )


@transaction.atomic
def link_procedure(doctor: Doctor, procedure_name: str) -> DoctorProcedure:
    """Attach a procedure type to a doctor, creating the type if needed."""
    ptype, _ = ProcedureType.objects.get_or_create(country=doctor.country, name=procedure_name.strip())
    link, _ = DoctorProcedure.objects.get_or_create(doctor=doctor, procedure_type=ptype)
    return link


def unlink_procedure(doctor: Doctor, procedure_name: str) -> bool:
    deleted, _ = DoctorProcedure.objects.filter(
        doctor=doctor, procedure_type__country=doctor.country, procedure_type__name=procedure_name,
    ).delete()
    return deleted > 0


def _doctor_procedure(doctor_id: int, procedure_type: str, country: str) -> Optional[DoctorProcedure]:
    return DoctorProcedure.objects.filter(
        doctor_id=doctor_id, doctor__country=country,
        procedure_type__country=country, procedure_type__name=procedure_type,
    ).first()


def get_sets_for_doctor_procedure(doctor_id: int, procedure_type: str, country: str) -> List[dict]:
    """Surgery sets and implant boxes configured for a doctor+procedure.

    Each item appears once even if it was linked more than once.
    Inactive items are left out.
    """
    dp = _doctor_procedure(doctor_id, (procedure_type or '').strip(), (country or '').strip())
    if dp is None:
        return []
    seen = set()
    items = []
    for link in dp.sets.select_related('surgery_set', 'implant_box').order_by('id'):
        if link.surgery_set_id and link.surgery_set.is_active:
            key = ('surgery_set', link.surgery_set_id)
            name = link.surgery_set.name
        elif link.implant_box_id and link.implant_box.is_active:
            key = ('implant_box', link.implant_box_id)
            name = link.implant_box.name
        else:
            continue
        if key in seen:
            continue
        seen.add(key)
        items.append({'item_type': key[0], 'item_id': key[1], 'item_name': name})
    items.sort(key=lambda i: (i['item_type'], i['item_name']))
    return items


def assign_item(doctor_id: int, procedure_type: str, country: str, *,
                surgery_set_id: Optional[int] = None, implant_box_id: Optional[int] = None) -> DoctorProcedureSet:
    if bool(surgery_set_id) == bool(implant_box_id):
        raise ValueError('exactly one of surgery_set_id / implant_box_id is required')
    dp = _doctor_procedure(doctor_id, procedure_type, country)
    if dp is None:
        raise ValueError('doctor does not perform this procedure')
    if surgery_set_id:
        item = SurgerySet.objects.get(pk=surgery_set_id, country=country)
        link, _ = DoctorProcedureSet.objects.get_or_create(doctor_procedure=dp, surgery_set=item)
    else:
        item = ImplantBox.objects.get(pk=implant_box_id, country=country)
        link, _ = DoctorProcedureSet.objects.get_or_create(doctor_procedure=dp, implant_box=item)
    return link


def unassign_item(doctor_id: int, procedure_type: str, country: str, *,
                  surgery_set_id: Optional[int] = None, implant_box_id: Optional[int] = None) -> int:
    dp = _doctor_procedure(doctor_id, procedure_type, country)
    if dp is None:
        return 0
    qs = dp.sets.all()
    if surgery_set_id:
        qs = qs.filter(surgery_set_id=surgery_set_id)
    elif implant_box_id:
        qs = qs.filter(implant_box_id=implant_box_id)
    else:
        return 0
    deleted, _ = qs.delete()
    return deleted
