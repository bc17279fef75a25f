import datetime
import re

import pytest

from booking.models import CaseCounter
from booking.services.references import generate_case_reference_number, parse_reference

pytestmark = pytest.mark.django_db

REFERENCE = re.compile(r'^TMC-Singapore-\d{4}-\d{3}$')


def test_first_reference_starts_counter_at_one():
    ref = generate_case_reference_number('Singapore', today=datetime.date(2025, 1, 2))
    assert ref == 'TMC-Singapore-2025-001'
    assert CaseCounter.objects.get(country='Singapore', year=2025).current_counter == 1


def test_references_are_unique_and_increasing():
    today = datetime.date(2025, 6, 1)
    refs = [generate_case_reference_number('Singapore', today=today) for _ in range(12)]
    assert all(REFERENCE.match(r) for r in refs)
    seqs = [parse_reference(r)['seq'] for r in refs]
    assert seqs == list(range(1, 13))
    assert len(set(refs)) == len(refs)


def test_counters_are_per_country_and_year():
    d2025 = datetime.date(2025, 12, 31)
    d2026 = datetime.date(2026, 1, 1)
    assert generate_case_reference_number('Singapore', today=d2025).endswith('-2025-001')
    assert generate_case_reference_number('Singapore', today=d2025).endswith('-2025-002')
    assert generate_case_reference_number('Malaysia', today=d2025) == 'TMC-Malaysia-2025-001'
    assert generate_case_reference_number('Singapore', today=d2026) == 'TMC-Singapore-2026-001'


def test_sequence_grows_past_three_digits():
    CaseCounter.objects.create(country='Singapore', year=2025, current_counter=999)
    assert generate_case_reference_number('Singapore', today=datetime.date(2025, 5, 5)) == 'TMC-Singapore-2025-1000'


def test_country_is_required():
    with pytest.raises(ValueError):
        generate_case_reference_number('  ')


def test_submitted_cases_use_the_counter(booked_case):
    parsed = parse_reference(booked_case.case_reference_number)
    assert parsed['country'] == 'Singapore'
    assert parsed['seq'] == 1
