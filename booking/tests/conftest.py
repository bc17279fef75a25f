import datetime

import pytest
from django.core.cache import cache

from booking.models import User
from booking.services.cases import submit_case


class RecordingNotifier:
    """Collects notify calls instead of sending mail."""

    def __init__(self):
        self.calls = []
        self.amendments = []

    def notify(self, case, status):
        self.calls.append((case.id, status))
        return 1

    def notify_amendment(self, case, changes, amended_by=None):
        self.amendments.append((case.id, changes))
        return 1


class FailingNotifier:
    def notify(self, case, status):
        raise ConnectionError('smtp down')

    def notify_amendment(self, case, changes, amended_by=None):
        raise ConnectionError('smtp down')


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def alice(db):
    return User.objects.create_user(
        username='alice', password='P@ssw0rd1', first_name='alice', email='alice@example.com',
        role='operations', countries=['Singapore'], departments=['Spine'],
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='root', password='P@ssw0rd1', email='root@example.com', role='admin', countries=[],
    )


def case_data(**overrides):
    data = {
        'hospital': 'Singapore General Hospital',
        'department': 'Spine',
        'date_of_surgery': datetime.date(2025, 3, 14),
        'time_of_procedure': datetime.time(9, 30),
        'procedure_type': 'Lumbar Fusion',
        'procedure_name': 'L4-L5 TLIF',
        'doctor_name': 'Dr. Tan Wei Ming',
        'surgery_set_selection': ['ALIF DISC PREP', 'MIS LUMBAR'],
        'implant_box': ['Pedicle Screw Box'],
        'special_instruction': 'Bring spare drill',
        'country': 'Singapore',
    }
    data.update(overrides)
    return data


@pytest.fixture
def booked_case(alice, notifier):
    return submit_case(case_data(), alice, notifier=notifier)
