"""
Case reference number generation.

References look like ``TMC-SG-2025-007``: a prefix, the case country,
the booking year and a per-country-per-year sequence zero padded to
three digits.  The sequence lives in :class:`CaseCounter` and is
incremented under a row lock so that concurrent submissions for the
same country never observe the same value.
"""
from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from booking.models import CaseCounter

logger = logging.getLogger(__name__)

REFERENCE_RE = re.compile(r'^(?P<prefix>[A-Z]+)-(?P<country>.+)-(?P<year>\d{4})-(?P<seq>\d{3,})$')


def format_reference(country: str, year: int, seq: int) -> str:
    prefix = getattr(settings, 'CASE_REFERENCE_PREFIX', 'TMC')
    return f"{prefix}-{country}-{year}-{seq:03d}"


def parse_reference(reference: str) -> Optional[dict]:
    m = REFERENCE_RE.match(reference or '')
    if not m:
        return None
    return {'prefix': m['prefix'], 'country': m['country'], 'year': int(m['year']), 'seq': int(m['seq'])}


def generate_case_reference_number(country: str, *, today: Optional[date] = None) -> str:
    if not country or not country.strip():
        raise ValueError('country is required')
    country = country.strip()
    year = (today or timezone.localdate()).year
    with transaction.atomic():
        CaseCounter.objects.get_or_create(country=country, year=year)
        counter = CaseCounter.objects.select_for_update().get(country=country, year=year)
        CaseCounter.objects.filter(pk=counter.pk).update(
            current_counter=F('current_counter') + 1,
            updated_at=timezone.now(),
        )
        counter.refresh_from_db(fields=['current_counter'])
    reference = format_reference(country, year, counter.current_counter)
    logger.debug("Issued case reference %s", reference)
    return reference
