"""
Post-submission edits to a case.

Only fields listed in :data:`AMENDABLE_FIELDS` are considered.  Each
one whose proposed value differs from the stored value is written to
the case and described in a single :class:`AmendmentHistory` row.
"""
from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import Any, Dict, List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_time

from booking.exceptions import AmendmentNotAllowed, CaseNotFound
from booking.models import AmendmentHistory, CaseBooking, Doctor, SystemSettings
from booking.services.audit import CATEGORY_CASE, safe_log_action
from booking.services.events import broadcast_case_event
from booking.services.notifications import default_notifier
from booking.services.usage import recalculate_daily_usage

logger = logging.getLogger(__name__)

AMENDABLE_FIELDS = {
    'hospital': 'Hospital',
    'department': 'Department',
    'date_of_surgery': 'Date of Surgery',
    'procedure_type': 'Procedure Type',
    'procedure_name': 'Procedure Name',
    'doctor_name': 'Doctor Name',
    'time_of_procedure': 'Time of Procedure',
    'surgery_set_selection': 'Surgery Set Selection',
    'implant_box': 'Implant Box',
    'special_instruction': 'Special Instruction',
}
LIST_FIELDS = {'surgery_set_selection', 'implant_box'}


def _coerce(field: str, value):
    if field == 'date_of_surgery' and isinstance(value, str):
        return parse_date(value)
    if field == 'time_of_procedure':
        if isinstance(value, str):
            return parse_time(value) if value else None
        return value or None
    if field in LIST_FIELDS:
        return [str(v) for v in (value or [])]
    if value is None:
        return ''
    return value


def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, time):
        return value.strftime('%H:%M')
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _list_change(label: str, old: List[str], new: List[str]) -> Optional[dict]:
    removed = [v for v in old if v not in new]
    added = [v for v in new if v not in old]
    if not removed and not added:
        return None
    return {
        'field': label,
        'oldValue': f"Removed: {', '.join(removed)}" if removed else 'None',
        'newValue': f"Added: {', '.join(added)}" if added else 'None',
    }


def diff_case(case: CaseBooking, changes: Dict[str, Any]):
    """Compare proposed values with ``case``.

    Returns ``(updates, entries)``: the model fields to write and the
    ``{field, oldValue, newValue}`` entries describing them.
    """
    updates: Dict[str, Any] = {}
    entries: List[dict] = []
    for field, label in AMENDABLE_FIELDS.items():
        if field not in changes:
            continue
        new = _coerce(field, changes[field])
        old = _coerce(field, getattr(case, field))
        if field in LIST_FIELDS:
            entry = _list_change(label, old, new)
            if entry is None:
                continue
            updates[field] = new
            entries.append(entry)
            continue
        if new == old:
            continue
        updates[field] = new
        entries.append({'field': label, 'oldValue': _text(old), 'newValue': _text(new)})
    return updates, entries


def check_amendment_allowed(case: CaseBooking, now=None) -> None:
    if case.status in CaseBooking.FINAL_STATUSES:
        raise AmendmentNotAllowed(f"Cases in status '{case.status}' cannot be amended.")
    config = SystemSettings.load()
    if config.max_amendments_per_case and case.amendment_history.count() >= config.max_amendments_per_case:
        raise AmendmentNotAllowed(f"This case has reached the limit of {config.max_amendments_per_case} amendments.")
    if config.amendment_time_limit and case.submitted_at:
        now = now or timezone.now()
        if now - case.submitted_at > timedelta(minutes=config.amendment_time_limit):
            raise AmendmentNotAllowed('The amendment window for this case has closed.')


def _write_history(case: CaseBooking, amended_by, reason: str, entries: List[dict], now) -> AmendmentHistory:
    fields = {
        'case': case,
        'amended_by': amended_by,
        'timestamp': now,
        'reason': reason,
        'changes': entries,
    }
    try:
        with transaction.atomic():
            return AmendmentHistory.objects.create(**fields)
    except DatabaseError as exc:
        synthetic_id = f"{case.id}_{int(now.timestamp() * 1000)}"
        logger.warning(
            "Amendment history insert failed, retrying as upsert",
            exc_info=True,
            extra={'case_id': case.id, 'history_id': synthetic_id},
        )
        try:
            with transaction.atomic():
                entry, _ = AmendmentHistory.objects.update_or_create(id=synthetic_id, defaults=fields)
        except DatabaseError:
            logger.error("Amendment history upsert failed", exc_info=True, extra={'case_id': case.id})
            raise exc
        return entry


def _after_commit(case: CaseBooking, entry: AmendmentHistory, amended_by, notifier) -> None:
    safe_log_action(
        user=amended_by,
        action='Case Amended',
        category=CATEGORY_CASE,
        target=case.case_reference_number,
        details=', '.join(c['field'] for c in entry.changes),
        metadata={'caseId': case.id, 'amendmentId': entry.id, 'reason': entry.reason},
        country=case.country,
        department=case.department,
    )
    try:
        notifier.notify_amendment(case, entry.changes, amended_by)
    except Exception:
        logger.warning("Amendment notification failed", exc_info=True, extra={'case_id': case.id})
    broadcast_case_event(case, 'amended', amendmentId=entry.id)


def amend_case(case_id, changes: Dict[str, Any], amended_by, *, reason: Optional[str] = None,
               notifier=None) -> Optional[AmendmentHistory]:
    """Apply ``changes`` to a case and record what changed.

    Returns the history row, or ``None`` when nothing differed.
    """
    notifier = notifier or default_notifier()
    with transaction.atomic():
        try:
            case = CaseBooking.objects.select_for_update().get(pk=case_id)
        except (CaseBooking.DoesNotExist, ValueError, TypeError):
            raise CaseNotFound()

        updates, entries = diff_case(case, changes or {})
        if not entries:
            logger.debug("Amendment with no differences", extra={'case_id': case.id})
            return None
        now = timezone.now()
        check_amendment_allowed(case, now=now)

        usage_before = (case.date_of_surgery, case.country, case.department)
        for field, value in updates.items():
            setattr(case, field, value)
        extra_fields = []
        if 'doctor_name' in updates:
            # the doctor link follows the name; unknown names drop it
            case.doctor = Doctor.objects.filter(
                name=case.doctor_name, country=case.country, is_active=True,
            ).order_by('pk').first()
            extra_fields.append('doctor')
        case.is_amended = True
        case.amended_by = amended_by
        case.amended_at = now
        case.updated_at = now
        case.save(update_fields=[*updates, *extra_fields, 'is_amended', 'amended_by', 'amended_at', 'updated_at'])

        if 'date_of_surgery' in updates or 'department' in updates:
            recalculate_daily_usage(*usage_before)
            recalculate_daily_usage(case.date_of_surgery, case.country, case.department)

        entry = _write_history(case, amended_by, reason or 'No reason provided', entries, now)
        transaction.on_commit(lambda: _after_commit(case, entry, amended_by, notifier))
    logger.info("Case amended", extra={'case_id': case.id, 'changes': len(entries)})
    return entry
