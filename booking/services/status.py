"""
Case status transitions.

Every change of a case's status is recorded in :class:`StatusHistory`.
The write happens under a row lock on the case so that two writers
moving the same case cannot both append a history row for the same
status.  Two kinds of repeat are swallowed:

* a case only ever gets one "Case Booked" entry (also enforced by a
  conditional unique constraint);
* for any other status, an entry is not repeated while a previous entry
  for that status is younger than ``STATUS_DUPLICATE_WINDOW_SECONDS``.

Moving a case into or out of "Case Cancelled" rebuilds the daily usage
for its surgery date in the same transaction.

Audit logging, email and the realtime broadcast happen after commit.
None of them can undo or fail the status change.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from booking.exceptions import CaseNotFound, InvalidStatus
from booking.models import CaseBooking, StatusHistory
from booking.services.audit import CATEGORY_STATUS, safe_log_action
from booking.services.events import broadcast_case_event
from booking.services.notifications import default_notifier
from booking.services.usage import recalculate_daily_usage

logger = logging.getLogger(__name__)

VALID_STATUSES = {value for value, _ in CaseBooking.STATUS_CHOICES}


def _window() -> timedelta:
    return timedelta(seconds=getattr(settings, 'STATUS_DUPLICATE_WINDOW_SECONDS', 60))


def is_duplicate_entry(case: CaseBooking, status: str, now=None) -> bool:
    """True when a new history row for ``status`` would repeat an existing one."""
    existing = StatusHistory.objects.filter(case=case, status=status)
    if status == CaseBooking.STATUS_CASE_BOOKED:
        return existing.exists()
    now = now or timezone.now()
    return existing.filter(timestamp__gte=now - _window()).exists()


def _lock_case(case_id) -> CaseBooking:
    try:
        return CaseBooking.objects.select_for_update().get(pk=case_id)
    except (CaseBooking.DoesNotExist, ValueError, TypeError):
        raise CaseNotFound()


def _after_commit(case: CaseBooking, previous: str, actor, details: str, notifier) -> None:
    safe_log_action(
        user=actor,
        action='Status Changed',
        category=CATEGORY_STATUS,
        target=case.case_reference_number,
        details=f"{previous} -> {case.status}" + (f": {details}" if details else ''),
        metadata={'caseId': case.id, 'from': previous, 'to': case.status},
        country=case.country,
        department=case.department,
    )
    try:
        notifier.notify(case, case.status)
    except Exception:
        logger.warning(
            "Status notification failed",
            exc_info=True,
            extra={'case_id': case.id, 'status': case.status},
        )
    broadcast_case_event(case, 'status_changed', previousStatus=previous)


def _apply_status(case: CaseBooking, new_status: str, changed_by, details: str, attachments, now,
                  extra_fields=()) -> Optional[StatusHistory]:
    previous = case.status
    case.status = new_status
    case.updated_at = now
    case.save(update_fields=['status', 'updated_at', *extra_fields])

    # cancelled cases are left out of daily usage
    if CaseBooking.STATUS_CASE_CANCELLED in (previous, new_status):
        recalculate_daily_usage(case.date_of_surgery, case.country, case.department)

    if is_duplicate_entry(case, new_status, now=now):
        logger.info(
            "Suppressed duplicate status history entry",
            extra={'case_id': case.id, 'status': new_status},
        )
        return None
    return StatusHistory.objects.create(
        case=case,
        status=new_status,
        processed_by=changed_by,
        timestamp=now,
        details=details or '',
        attachments=list(attachments or []),
    )


def update_case_status(case_id, new_status: str, changed_by, *, details: Optional[str] = None,
                       attachments=None, notifier=None) -> Optional[StatusHistory]:
    """Move a case to ``new_status``.

    Returns the new history row, or ``None`` when the case already had
    that status or the entry was suppressed as a duplicate.
    """
    if new_status not in VALID_STATUSES:
        raise InvalidStatus(f"Unknown status: {new_status}")
    notifier = notifier or default_notifier()

    with transaction.atomic():
        case = _lock_case(case_id)
        previous = case.status
        if previous == new_status:
            logger.debug("Status unchanged, nothing to write", extra={'case_id': case.id, 'status': new_status})
            return None
        entry = _apply_status(case, new_status, changed_by, details, attachments, timezone.now())
        transaction.on_commit(lambda: _after_commit(case, previous, changed_by, details, notifier))
    return entry


def process_case_order(case_id, processed_by, details: str, *, new_status: str = CaseBooking.STATUS_ORDER_PREPARED,
                       notifier=None) -> Optional[StatusHistory]:
    """Record who prepared the order, then move the case to ``new_status``.

    The processing fields are stamped even when the case is already in
    the target status.
    """
    if new_status not in VALID_STATUSES:
        raise InvalidStatus(f"Unknown status: {new_status}")
    notifier = notifier or default_notifier()

    with transaction.atomic():
        case = _lock_case(case_id)
        now = timezone.now()
        previous = case.status
        case.processed_by = processed_by
        case.processed_at = now
        case.process_order_details = details or ''
        if previous == new_status:
            case.updated_at = now
            case.save(update_fields=['processed_by', 'processed_at', 'process_order_details', 'updated_at'])
            return None
        entry = _apply_status(
            case, new_status, processed_by, details or 'Order processed and prepared', None, now,
            extra_fields=('processed_by', 'processed_at', 'process_order_details'),
        )
        transaction.on_commit(lambda: _after_commit(case, previous, processed_by, details, notifier))
    return entry
