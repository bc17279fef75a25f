from typing import Optional, List, Dict, Any, Iterable
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from booking.exceptions import CaseNotFound
from booking.models import CaseBooking, CaseBookingQuantity, Doctor, StatusHistory
from booking.services.audit import CATEGORY_CASE, safe_log_action
from booking.services.events import broadcast_case_event
from booking.services.notifications import default_notifier
from booking.services.references import generate_case_reference_number
from booking.services.usage import recalculate_daily_usage

User = get_user_model()
logger = logging.getLogger(__name__)

GLOBAL_ROLES = {'admin', 'it'}
ITEM_TYPES = {CaseBookingQuantity.ITEM_SURGERY_SET, CaseBookingQuantity.ITEM_IMPLANT_BOX}


def visible_countries(user) -> Optional[List[str]]:
    """Countries the user may see; ``None`` means every country."""
    if getattr(user, 'role', '') in GLOBAL_ROLES or getattr(user, 'is_superuser', False):
        return None
    return list(getattr(user, 'countries', None) or [])


def can_access_case(user, case: CaseBooking) -> bool:
    countries = visible_countries(user)
    return countries is None or case.country in countries


def get_case(case_id, user=None) -> CaseBooking:
    try:
        case = CaseBooking.objects.select_related('submitted_by', 'processed_by', 'amended_by').get(pk=case_id)
    except (CaseBooking.DoesNotExist, ValueError, TypeError):
        raise CaseNotFound()
    if user is not None and not can_access_case(user, case):
        raise CaseNotFound()
    return case


def _user_name(user) -> Optional[str]:
    return user.display_name if user is not None else None


def format_case(case: CaseBooking, *, with_history: bool = False) -> Dict[str, Any]:
    data = {
        'id': case.id,
        'caseReferenceNumber': case.case_reference_number,
        'hospital': case.hospital,
        'department': case.department,
        'dateOfSurgery': case.date_of_surgery.isoformat() if case.date_of_surgery else None,
        'timeOfProcedure': case.time_of_procedure.strftime('%H:%M') if case.time_of_procedure else None,
        'procedureType': case.procedure_type,
        'procedureName': case.procedure_name,
        'doctorId': case.doctor_id,
        'doctorName': case.doctor_name,
        'surgerySetSelection': case.surgery_set_selection,
        'implantBox': case.implant_box,
        'specialInstruction': case.special_instruction,
        'status': case.status,
        'country': case.country,
        'submittedBy': _user_name(case.submitted_by),
        'submittedAt': case.submitted_at.isoformat() if case.submitted_at else None,
        'processedBy': _user_name(case.processed_by),
        'processedAt': case.processed_at.isoformat() if case.processed_at else None,
        'processOrderDetails': case.process_order_details or None,
        'isAmended': case.is_amended,
        'amendedBy': _user_name(case.amended_by),
        'amendedAt': case.amended_at.isoformat() if case.amended_at else None,
        'updatedAt': case.updated_at.isoformat() if case.updated_at else None,
    }
    if with_history:
        data['statusHistory'] = [{
            'id': h.id,
            'status': h.status,
            'processedBy': _user_name(h.processed_by),
            'timestamp': h.timestamp.isoformat(),
            'details': h.details or None,
            'attachments': h.attachments,
        } for h in case.status_history.select_related('processed_by').order_by('timestamp', 'id')]
        data['amendmentHistory'] = [{
            'id': a.id,
            'amendedBy': _user_name(a.amended_by),
            'timestamp': a.timestamp.isoformat(),
            'reason': a.reason,
            'changes': a.changes,
        } for a in case.amendment_history.select_related('amended_by').order_by('timestamp')]
        data['quantities'] = get_case_quantities(case)
    return data


def list_cases(user, *, filters: Optional[Dict[str, Any]] = None, page: int = 1, page_size: int = 20):
    filters = filters or {}
    qs = CaseBooking.objects.all()
    countries = visible_countries(user)
    if countries is not None:
        qs = qs.filter(country__in=countries)

    if filters.get('country'):
        qs = qs.filter(country=filters['country'])
    if filters.get('status'):
        qs = qs.filter(status=filters['status'])
    if filters.get('department'):
        qs = qs.filter(department=filters['department'])
    if filters.get('hospital'):
        qs = qs.filter(hospital=filters['hospital'])
    if filters.get('submitted_by'):
        qs = qs.filter(submitted_by_id=filters['submitted_by'])
    if filters.get('date_from'):
        qs = qs.filter(date_of_surgery__gte=filters['date_from'])
    if filters.get('date_to'):
        qs = qs.filter(date_of_surgery__lte=filters['date_to'])
    q = filters.get('q')
    if q:
        qs = qs.filter(
            Q(case_reference_number__icontains=q) | Q(hospital__icontains=q) |
            Q(doctor_name__icontains=q) | Q(procedure_name__icontains=q)
        )

    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 20)))
    start = (page - 1) * page_size
    items = qs.select_related('submitted_by', 'processed_by', 'amended_by').order_by('-date_of_surgery', '-id')[start:start + page_size]
    return [format_case(c) for c in items], total


def _clean_quantities(quantities: Iterable[dict]) -> Dict[tuple, int]:
    cleaned: Dict[tuple, int] = {}
    for q in quantities or []:
        item_type = q.get('item_type')
        name = (q.get('item_name') or '').strip()
        try:
            qty = int(q.get('quantity') or 0)
        except (TypeError, ValueError):
            continue
        if item_type not in ITEM_TYPES or not name or qty <= 0:
            continue
        cleaned[(item_type, name)] = qty
    return cleaned


def save_case_quantities(case: CaseBooking, quantities: Iterable[dict]) -> int:
    """Replace the quantity rows of ``case``; only positive counts are kept."""
    cleaned = _clean_quantities(quantities)
    with transaction.atomic():
        CaseBookingQuantity.objects.filter(case=case).delete()
        CaseBookingQuantity.objects.bulk_create([
            CaseBookingQuantity(case=case, item_type=t, item_name=n, quantity=qty)
            for (t, n), qty in cleaned.items()
        ])
    return len(cleaned)


def get_case_quantities(case: CaseBooking) -> List[dict]:
    return [
        {'itemType': q.item_type, 'itemName': q.item_name, 'quantity': q.quantity}
        for q in case.quantities.order_by('item_type', 'item_name')
    ]


def submit_case(data: Dict[str, Any], submitted_by, quantities: Optional[Iterable[dict]] = None,
                *, notifier=None) -> CaseBooking:
    """Create a booking in "Case Booked" and seed its status history."""
    notifier = notifier or default_notifier()
    doctor = None
    if data.get('doctor_id'):
        doctor = Doctor.objects.filter(pk=data['doctor_id'], country=data['country']).first()

    with transaction.atomic():
        now = timezone.now()
        case = CaseBooking.objects.create(
            case_reference_number=generate_case_reference_number(data['country']),
            hospital=data['hospital'],
            department=data['department'],
            date_of_surgery=data['date_of_surgery'],
            time_of_procedure=data.get('time_of_procedure'),
            procedure_type=data['procedure_type'],
            procedure_name=data['procedure_name'],
            doctor=doctor,
            doctor_name=data.get('doctor_name') or (doctor.name if doctor else ''),
            surgery_set_selection=list(data.get('surgery_set_selection') or []),
            implant_box=list(data.get('implant_box') or []),
            special_instruction=data.get('special_instruction') or '',
            status=CaseBooking.STATUS_CASE_BOOKED,
            country=data['country'],
            submitted_by=submitted_by,
            submitted_at=now,
            updated_at=now,
        )
        StatusHistory.objects.create(
            case=case, status=CaseBooking.STATUS_CASE_BOOKED, processed_by=submitted_by,
            timestamp=now, details='Case created',
        )
        if quantities:
            save_case_quantities(case, quantities)
        recalculate_daily_usage(case.date_of_surgery, case.country, case.department)
        transaction.on_commit(lambda: _after_submit(case, submitted_by, notifier))

    logger.info("Case submitted", extra={'case_id': case.id, 'reference': case.case_reference_number})
    return case


def _after_submit(case: CaseBooking, actor, notifier) -> None:
    safe_log_action(
        user=actor, action='Case Created', category=CATEGORY_CASE,
        target=case.case_reference_number,
        details=f"{case.hospital} / {case.procedure_type} on {case.date_of_surgery}",
        metadata={'caseId': case.id}, country=case.country, department=case.department,
    )
    try:
        notifier.notify(case, CaseBooking.STATUS_CASE_BOOKED)
    except Exception:
        logger.warning("Case booked notification failed", exc_info=True, extra={'case_id': case.id})
    broadcast_case_event(case, 'created')


def delete_case(case_id, actor) -> str:
    """Remove a case and its quantities, then refresh the day's usage."""
    with transaction.atomic():
        try:
            case = CaseBooking.objects.select_for_update().get(pk=case_id)
        except (CaseBooking.DoesNotExist, ValueError, TypeError):
            raise CaseNotFound()
        reference = case.case_reference_number
        usage_key = (case.date_of_surgery, case.country, case.department)
        snapshot = CaseBooking(pk=case.pk, case_reference_number=reference, status=case.status, country=case.country)
        CaseBookingQuantity.objects.filter(case=case).delete()
        case.delete()
        recalculate_daily_usage(*usage_key)
        transaction.on_commit(lambda: broadcast_case_event(snapshot, 'deleted'))

    safe_log_action(
        user=actor, action='Case Deleted', category=CATEGORY_CASE, target=reference,
        status='warning', country=usage_key[1], department=usage_key[2],
    )
    logger.info("Case deleted", extra={'reference': reference})
    return reference
