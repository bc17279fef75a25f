"""
URL mappings for the case booking API.

Trailing slashes are omitted (``APPEND_SLASH = False``).
"""
from django.urls import path, include

from .auth_views import login_view, me_view, jwt_refresh_view, jwt_logout_view
from .views import audit_logs, catalog, cases, code_tables, doctors, email_rules, health, system_settings, usage


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),
    path('api/auth/me', me_view),

    # Cases
    path('api/cases', cases.cases),
    path('api/cases/next-reference', cases.next_reference),
    path('api/cases/<int:pk>', cases.case_detail),
    path('api/cases/<int:pk>/status', cases.case_status),
    path('api/cases/<int:pk>/process', cases.case_process),
    path('api/cases/<int:pk>/amend', cases.case_amend),
    path('api/cases/<int:pk>/quantities', cases.case_quantities),
    path('api/usage/daily', usage.daily_usage),

    # Catalog
    path('api/code-tables', code_tables.code_tables),
    path('api/code-tables/<int:pk>', code_tables.code_table_detail),
    path('api/doctors', doctors.doctors),
    path('api/doctors/<int:pk>', doctors.doctor_detail),
    path('api/doctors/<int:pk>/procedures', doctors.doctor_procedures),
    path('api/doctors/<int:pk>/sets', doctors.doctor_procedure_sets),
    path('api/procedure-types', catalog.procedure_types),
    path('api/procedure-types/<int:pk>/visibility', catalog.procedure_type_visibility),
    path('api/surgery-sets', catalog.surgery_sets),
    path('api/surgery-sets/<int:pk>', catalog.surgery_set_detail),
    path('api/implant-boxes', catalog.implant_boxes),
    path('api/implant-boxes/<int:pk>', catalog.implant_box_detail),
    path('api/set-assignments', catalog.set_assignments),

    # Administration
    path('api/email-rules', email_rules.email_rules),
    path('api/email-rules/<int:pk>', email_rules.email_rule_detail),
    path('api/settings', system_settings.system_settings),
    path('api/settings/reset', system_settings.system_settings_reset),
    path('api/audit-logs', audit_logs.audit_logs),
]
