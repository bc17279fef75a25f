from datetime import timedelta

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import IntegrityError, transaction
from django.utils import timezone

from booking.exceptions import CaseNotFound, InvalidStatus
from booking.models import AuditLog, CaseBooking, StatusHistory
from booking.services import audit
from booking.services.events import CASES_GROUP
from booking.services.status import process_case_order, update_case_status
from booking.tests.conftest import FailingNotifier

pytestmark = pytest.mark.django_db


def history(case, status=None):
    qs = StatusHistory.objects.filter(case=case)
    if status:
        qs = qs.filter(status=status)
    return qs


def test_submitted_case_has_single_booked_entry(booked_case):
    entries = list(history(booked_case))
    assert len(entries) == 1
    assert entries[0].status == CaseBooking.STATUS_CASE_BOOKED
    assert entries[0].details == 'Case created'


def test_same_status_is_noop(booked_case, alice, notifier):
    before = CaseBooking.objects.get(pk=booked_case.pk).updated_at
    result = update_case_status(booked_case.id, CaseBooking.STATUS_CASE_BOOKED, alice, notifier=notifier)
    assert result is None
    assert history(booked_case).count() == 1
    assert CaseBooking.objects.get(pk=booked_case.pk).updated_at == before


def test_case_booked_recorded_once_across_round_trips(booked_case, alice, notifier):
    for _ in range(3):
        update_case_status(booked_case.id, CaseBooking.STATUS_PREPARING_ORDER, alice, notifier=notifier)
        update_case_status(booked_case.id, CaseBooking.STATUS_CASE_BOOKED, alice, notifier=notifier)
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_CASE_BOOKED
    assert history(booked_case, CaseBooking.STATUS_CASE_BOOKED).count() == 1


def test_database_rejects_second_booked_entry(booked_case):
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            StatusHistory.objects.create(case=booked_case, status=CaseBooking.STATUS_CASE_BOOKED)


def test_repeat_within_window_is_suppressed(booked_case, alice, notifier):
    first = update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
    update_case_status(booked_case.id, CaseBooking.STATUS_PREPARING_ORDER, alice, notifier=notifier)
    again = update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
    assert first is not None
    assert again is None
    assert history(booked_case, CaseBooking.STATUS_ORDER_PREPARED).count() == 1
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_ORDER_PREPARED


def test_repeat_after_window_is_recorded(booked_case, alice, notifier, settings):
    settings.STATUS_DUPLICATE_WINDOW_SECONDS = 60
    update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
    history(booked_case, CaseBooking.STATUS_ORDER_PREPARED).update(timestamp=timezone.now() - timedelta(seconds=61))
    update_case_status(booked_case.id, CaseBooking.STATUS_PREPARING_ORDER, alice, notifier=notifier)
    update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
    assert history(booked_case, CaseBooking.STATUS_ORDER_PREPARED).count() == 2


def test_order_prepared_by_alice_then_immediate_repeat(booked_case, alice, notifier):
    entry = update_case_status(booked_case.id, 'Order Prepared', alice, notifier=notifier)
    booked_case.refresh_from_db()
    assert booked_case.status == 'Order Prepared'
    assert entry.status == 'Order Prepared'
    assert entry.processed_by.username == 'alice'

    assert update_case_status(booked_case.id, 'Order Prepared', alice, notifier=notifier) is None
    assert history(booked_case, 'Order Prepared').count() == 1


def test_unknown_status_rejected(booked_case, alice, notifier):
    with pytest.raises(InvalidStatus):
        update_case_status(booked_case.id, 'Shipped To Mars', alice, notifier=notifier)
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_CASE_BOOKED


def test_missing_case(alice, notifier):
    with pytest.raises(CaseNotFound):
        update_case_status(999999, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)


def test_details_and_attachments_are_stored(booked_case, alice, notifier):
    entry = update_case_status(
        booked_case.id, CaseBooking.STATUS_DELIVERED_HOSPITAL, alice,
        details='Left with OT nurse', attachments=['delivery/photo-1.jpg'], notifier=notifier,
    )
    entry.refresh_from_db()
    assert entry.details == 'Left with OT nurse'
    assert entry.attachments == ['delivery/photo-1.jpg']


def test_side_effects_run_after_commit(booked_case, alice, notifier, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
    assert len(callbacks) == 1
    assert notifier.calls == [(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED)]
    log = AuditLog.objects.get(action='Status Changed')
    assert log.target == booked_case.case_reference_number
    assert log.metadata['to'] == CaseBooking.STATUS_ORDER_PREPARED


def test_audit_and_email_failures_do_not_undo_status(booked_case, alice, monkeypatch, django_capture_on_commit_callbacks):
    def broken(**kwargs):
        raise RuntimeError('audit store unavailable')

    monkeypatch.setattr(audit, 'log_action', broken)
    with django_capture_on_commit_callbacks(execute=True):
        entry = update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=FailingNotifier())
    assert entry is not None
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_ORDER_PREPARED


def test_status_change_is_broadcast(booked_case, alice, notifier, django_capture_on_commit_callbacks):
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(CASES_GROUP, channel)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            update_case_status(booked_case.id, CaseBooking.STATUS_ORDER_PREPARED, alice, notifier=notifier)
        message = async_to_sync(layer.receive)(channel)
    finally:
        async_to_sync(layer.group_discard)(CASES_GROUP, channel)
    assert message['type'] == 'case.updated'
    assert message['event'] == 'status_changed'
    assert message['caseId'] == booked_case.id
    assert message['previousStatus'] == CaseBooking.STATUS_CASE_BOOKED


def test_process_order_stamps_processor(booked_case, alice, notifier):
    entry = process_case_order(booked_case.id, alice, 'Picked 2 sets, 1 box', notifier=notifier)
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_ORDER_PREPARED
    assert booked_case.processed_by == alice
    assert booked_case.processed_at is not None
    assert booked_case.process_order_details == 'Picked 2 sets, 1 box'
    assert entry.details == 'Picked 2 sets, 1 box'
