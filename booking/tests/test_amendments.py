import datetime
from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from booking.exceptions import AmendmentNotAllowed, CaseNotFound
from booking.models import AmendmentHistory, AuditLog, CaseBooking, Doctor, SystemSettings
from booking.services.amendments import amend_case, diff_case
from booking.services.cases import format_case, submit_case
from booking.tests.conftest import case_data

pytestmark = pytest.mark.django_db


def test_unchanged_values_are_a_noop(booked_case, alice, notifier):
    before = CaseBooking.objects.get(pk=booked_case.pk)
    result = amend_case(booked_case.id, {
        'hospital': before.hospital,
        'date_of_surgery': before.date_of_surgery.isoformat(),
        'time_of_procedure': '09:30',
        'surgery_set_selection': list(reversed(before.surgery_set_selection)),
        'special_instruction': before.special_instruction,
    }, alice, notifier=notifier)
    after = CaseBooking.objects.get(pk=booked_case.pk)
    assert result is None
    assert not after.is_amended
    assert after.updated_at == before.updated_at
    assert AmendmentHistory.objects.filter(case=booked_case).count() == 0


def test_one_history_row_per_amendment(booked_case, alice, notifier):
    entry = amend_case(booked_case.id, {
        'hospital': 'Tan Tock Seng Hospital',
        'date_of_surgery': datetime.date(2025, 3, 21),
        'doctor_name': 'Dr. Sarah Lim',
        'procedure_type': booked_case.procedure_type,
    }, alice, reason='Surgeon swap', notifier=notifier)

    assert AmendmentHistory.objects.filter(case=booked_case).count() == 1
    assert entry.reason == 'Surgeon swap'
    assert [c['field'] for c in entry.changes] == ['Hospital', 'Date of Surgery', 'Doctor Name']
    assert entry.changes[1] == {'field': 'Date of Surgery', 'oldValue': '2025-03-14', 'newValue': '2025-03-21'}

    booked_case.refresh_from_db()
    assert booked_case.hospital == 'Tan Tock Seng Hospital'
    assert booked_case.date_of_surgery == datetime.date(2025, 3, 21)
    assert booked_case.is_amended
    assert booked_case.amended_by == alice
    assert booked_case.amended_at == booked_case.updated_at == entry.timestamp


def test_list_fields_record_added_and_removed(booked_case):
    _, entries = diff_case(booked_case, {
        'surgery_set_selection': ['MIS LUMBAR', 'CAPRI EXPANDABLE'],
        'implant_box': [],
    })
    assert entries == [
        {'field': 'Surgery Set Selection', 'oldValue': 'Removed: ALIF DISC PREP', 'newValue': 'Added: CAPRI EXPANDABLE'},
        {'field': 'Implant Box', 'oldValue': 'Removed: Pedicle Screw Box', 'newValue': 'None'},
    ]


def test_unknown_fields_are_ignored(booked_case, alice, notifier):
    assert amend_case(booked_case.id, {'status': 'Case Closed', 'country': 'Malaysia'}, alice, notifier=notifier) is None
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_CASE_BOOKED
    assert booked_case.country == 'Singapore'


def test_history_insert_falls_back_to_upsert(booked_case, alice, notifier, monkeypatch):
    def refuse(**kwargs):
        raise DatabaseError('insert rejected')

    monkeypatch.setattr(AmendmentHistory.objects, 'create', refuse)
    entry = amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier)
    assert entry.id.startswith(f"{booked_case.id}_")
    assert AmendmentHistory.objects.get(pk=entry.id).changes[0]['field'] == 'Hospital'


def test_original_error_raised_when_upsert_also_fails(booked_case, alice, notifier, monkeypatch):
    original = DatabaseError('insert rejected')

    def refuse(**kwargs):
        raise original

    def refuse_upsert(**kwargs):
        raise DatabaseError('upsert rejected')

    monkeypatch.setattr(AmendmentHistory.objects, 'create', refuse)
    monkeypatch.setattr(AmendmentHistory.objects, 'update_or_create', refuse_upsert)
    with pytest.raises(DatabaseError) as exc:
        amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier)
    assert exc.value is original
    booked_case.refresh_from_db()
    assert booked_case.hospital == 'Singapore General Hospital'
    assert not booked_case.is_amended


def test_amendment_limit(booked_case, alice, notifier):
    config = SystemSettings.load()
    config.max_amendments_per_case = 1
    config.save()
    amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier)
    with pytest.raises(AmendmentNotAllowed):
        amend_case(booked_case.id, {'hospital': 'Mount Elizabeth Hospital'}, alice, notifier=notifier)


def test_amendment_window_closes(booked_case, alice, notifier):
    CaseBooking.objects.filter(pk=booked_case.pk).update(submitted_at=timezone.now() - timedelta(days=2))
    with pytest.raises(AmendmentNotAllowed):
        amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier)


def test_zero_time_limit_disables_window(booked_case, alice, notifier):
    config = SystemSettings.load()
    config.amendment_time_limit = 0
    config.save()
    CaseBooking.objects.filter(pk=booked_case.pk).update(submitted_at=timezone.now() - timedelta(days=30))
    assert amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier) is not None


def test_closed_case_cannot_be_amended(booked_case, alice, notifier):
    CaseBooking.objects.filter(pk=booked_case.pk).update(status=CaseBooking.STATUS_CASE_CLOSED)
    with pytest.raises(AmendmentNotAllowed):
        amend_case(booked_case.id, {'hospital': 'Tan Tock Seng Hospital'}, alice, notifier=notifier)


def test_missing_case(alice, notifier):
    with pytest.raises(CaseNotFound):
        amend_case(424242, {'hospital': 'X'}, alice, notifier=notifier)


def test_amendment_is_audited_after_commit(booked_case, alice, notifier, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        entry = amend_case(booked_case.id, {'special_instruction': 'Call before delivery'}, alice, notifier=notifier)
    log = AuditLog.objects.get(action='Case Amended')
    assert log.details == 'Special Instruction'
    assert log.metadata['amendmentId'] == entry.id
    assert notifier.amendments == [(booked_case.id, entry.changes)]


def test_doctor_link_follows_amended_name(alice, notifier):
    tan = Doctor.objects.create(name='Dr. Tan Wei Ming', country='Singapore')
    lim = Doctor.objects.create(name='Dr. Sarah Lim', country='Singapore')
    Doctor.objects.create(name='Dr. Sarah Lim', country='Malaysia')
    case = submit_case(case_data(doctor_id=tan.id), alice, notifier=notifier)
    assert case.doctor_id == tan.id

    amend_case(case.id, {'doctor_name': 'Dr. Sarah Lim'}, alice, notifier=notifier)
    case.refresh_from_db()
    assert case.doctor_id == lim.id
    assert format_case(case)['doctorId'] == lim.id

    amend_case(case.id, {'doctor_name': 'Dr. Walk In'}, alice, notifier=notifier)
    case.refresh_from_db()
    assert case.doctor_id is None
    assert format_case(case)['doctorName'] == 'Dr. Walk In'
