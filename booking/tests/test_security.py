import pytest
from rest_framework.test import APIClient

from booking.exceptions import api_exception_handler
from booking.models import AuditLog, CaseBooking, StatusHistory, User
from booking.services.system_settings import update_settings

pytestmark = pytest.mark.django_db


def login(client, username, password):
    return client.post('/api/auth/login', {'username': username, 'password': password}, format='json')


def test_login_returns_jwt_and_token(alice):
    client = APIClient()
    r = login(client, 'alice', 'P@ssw0rd1')
    assert r.status_code == 200
    assert r.data['token']
    assert r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['user']['countries'] == ['Singapore']
    assert AuditLog.objects.filter(action='Login', target='alice').exists()


def test_token_and_jwt_both_authenticate(alice):
    client = APIClient()
    r = login(client, 'alice', 'P@ssw0rd1')

    client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    assert client.get('/api/auth/me').data['user']['username'] == 'alice'

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
    assert client.get('/api/auth/me').data['user']['username'] == 'alice'


def test_bad_password_is_rejected_and_audited(alice):
    r = login(APIClient(), 'alice', 'wrong')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid_credentials'
    assert AuditLog.objects.get(action='Login Failed').status == 'error'


def test_role_cannot_be_escalated_at_login(alice):
    client = APIClient()
    r = client.post('/api/auth/login', {'username': 'alice', 'password': 'P@ssw0rd1', 'role': 'admin'}, format='json')
    assert r.status_code == 200
    alice.refresh_from_db()
    assert alice.role == 'operations'


def test_refresh_and_logout(alice):
    client = APIClient()
    r = login(client, 'alice', 'P@ssw0rd1')
    refreshed = client.post('/api/auth/refresh', {'refresh': r.data['jwt_refresh']}, format='json')
    assert refreshed.status_code == 200
    assert refreshed.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    out = client.post('/api/auth/logout', {'refresh': r.data['jwt_refresh']}, format='json')
    assert out.data == {'ok': True, 'blacklisted': 1}
    assert client.post('/api/auth/refresh', {'refresh': r.data['jwt_refresh']}, format='json').status_code == 401


def test_anonymous_requests_are_refused():
    client = APIClient()
    assert client.get('/api/cases').status_code in (401, 403)


def test_maintenance_mode_blocks_non_admins(alice, admin_user):
    update_settings({'maintenanceMode': True}, admin_user)

    client = APIClient()
    r = login(client, 'alice', 'P@ssw0rd1')
    assert r.status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    blocked = client.get('/api/cases')
    assert blocked.status_code == 503
    assert blocked.json()['error']['code'] == 'maintenance'

    admin = APIClient()
    admin.force_authenticate(user=admin_user)
    assert admin.get('/api/cases').status_code == 200
    assert admin.put('/api/settings', {'maintenanceMode': False}, format='json').status_code == 200
    assert client.get('/api/cases').status_code == 200


def test_settings_changes_are_admin_only(alice, admin_user):
    client = APIClient()
    client.force_authenticate(user=alice)
    assert client.get('/api/settings').data['data']['maintenanceMode'] is False
    r = client.put('/api/settings', {'maxAmendmentsPerCase': 3}, format='json')
    assert r.status_code == 403

    client.force_authenticate(user=admin_user)
    r = client.put('/api/settings', {'maxAmendmentsPerCase': 3}, format='json')
    assert r.status_code == 200
    assert r.data['data']['maxAmendmentsPerCase'] == 3
    assert AuditLog.objects.filter(action='Settings Updated', details='maxAmendmentsPerCase').exists()


def test_only_admins_configure_email_rules(alice):
    client = APIClient()
    client.force_authenticate(user=alice)
    r = client.put('/api/email-rules', {'country': 'Singapore', 'status': 'Order Prepared',
                                        'recipients': {'roles': ['operations']}}, format='json')
    assert r.status_code == 403


def test_healthz():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True, 'cache': True}


def test_inactive_user_cannot_log_in(db):
    User.objects.create_user(username='gone', password='P@ssw0rd1', role='sales', is_active=False)
    assert login(APIClient(), 'gone', 'P@ssw0rd1').status_code == 400


@pytest.fixture
def driver(db):
    return User.objects.create_user(username='dave', password='P@ssw0rd1', role='driver', countries=['Singapore'])


def post_status(user, case, new_status):
    client = APIClient()
    client.force_authenticate(user=user)
    return client.post(f'/api/cases/{case.id}/status', {'status': new_status}, format='json')


def test_status_changes_are_limited_by_role(booked_case, driver):
    r = post_status(driver, booked_case, CaseBooking.STATUS_SALES_APPROVED)
    assert r.status_code == 403
    assert r.json()['error']['code'] == 'permission_denied'
    booked_case.refresh_from_db()
    assert booked_case.status == CaseBooking.STATUS_CASE_BOOKED
    assert not StatusHistory.objects.filter(case=booked_case, status=CaseBooking.STATUS_SALES_APPROVED).exists()

    r = post_status(driver, booked_case, CaseBooking.STATUS_PENDING_DELIVERY_HOSPITAL)
    assert r.status_code == 200
    assert r.data['data']['status'] == CaseBooking.STATUS_PENDING_DELIVERY_HOSPITAL


def test_only_operations_managers_cancel(booked_case, alice, admin_user):
    assert post_status(alice, booked_case, CaseBooking.STATUS_CASE_CANCELLED).status_code == 403

    manager = User.objects.create_user(username='olga', password='P@ssw0rd1', role='operations-manager',
                                       countries=['Singapore'])
    assert post_status(manager, booked_case, CaseBooking.STATUS_CASE_CANCELLED).status_code == 200
    # reopening has no role of its own
    assert post_status(manager, booked_case, CaseBooking.STATUS_CASE_BOOKED).status_code == 403
    assert post_status(admin_user, booked_case, CaseBooking.STATUS_CASE_BOOKED).status_code == 200


def test_unknown_status_is_still_a_bad_request(booked_case, driver):
    r = post_status(driver, booked_case, 'Teleported')
    assert r.status_code == 400
    assert r.json()['error']['code'] == 'invalid_status'


def test_server_errors_hide_details_outside_debug(settings):
    settings.DEBUG = False
    r = api_exception_handler(RuntimeError('password=hunter2'), {'view': None})
    assert r.status_code == 500
    assert r.data == {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error.'}}

    settings.DEBUG = True
    r = api_exception_handler(RuntimeError('password=hunter2'), {'view': None})
    assert r.data['error']['message'] == 'password=hunter2'
