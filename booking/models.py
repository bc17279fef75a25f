"""
Database models for the case booking backend.

These models capture surgical case bookings and their append-only
status and amendment histories, the per-country catalog used when
booking (hospitals, departments, doctors, procedure types, surgery
sets and implant boxes), email notification rules and the single row
of system settings.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone


class User(AbstractUser):
    """Custom user model with a role and country/department scope.

    A user may work across several countries and departments; both are
    stored as JSON lists of names so that they line up with the values
    kept on :class:`CaseBooking`.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('operations', 'Operations'),
        ('operations-manager', 'Operations Manager'),
        ('sales', 'Sales'),
        ('sales-manager', 'Sales Manager'),
        ('driver', 'Driver'),
        ('it', 'IT'),
    ]
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default='sales', db_index=True)
    countries = models.JSONField(default=list, blank=True)
    departments = models.JSONField(default=list, blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class CodeTable(models.Model):
    """Per-country lookup values such as hospitals and departments."""
    TYPE_HOSPITALS = 'hospitals'
    TYPE_DEPARTMENTS = 'departments'
    TYPE_CHOICES = ((TYPE_HOSPITALS, 'hospitals'), (TYPE_DEPARTMENTS, 'departments'))

    country = models.CharField(max_length=32, db_index=True)
    table_type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    code = models.CharField(max_length=100)
    display_name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'table_type', 'code')]

    def __str__(self) -> str:
        return f"{self.country}/{self.table_type}: {self.display_name}"


class Doctor(models.Model):
    name = models.CharField(max_length=200)
    country = models.CharField(max_length=32, db_index=True)
    specialties = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.country})"


class ProcedureType(models.Model):
    """A procedure type offered in a country; hidden types stay in history but not in pickers."""
    country = models.CharField(max_length=32, db_index=True)
    name = models.CharField(max_length=100)
    is_hidden = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'name')]

    def __str__(self) -> str:
        return f"{self.name} ({self.country})"


class DoctorProcedure(models.Model):
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='procedures')
    procedure_type = models.ForeignKey(ProcedureType, on_delete=models.CASCADE, related_name='doctor_links')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('doctor', 'procedure_type')]

    def __str__(self) -> str:
        return f"{self.doctor_id} -> {self.procedure_type_id}"


class SurgerySet(models.Model):
    country = models.CharField(max_length=32, db_index=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'name')]

    def __str__(self) -> str:
        return self.name


class ImplantBox(models.Model):
    country = models.CharField(max_length=32, db_index=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'name')]

    def __str__(self) -> str:
        return self.name


class DoctorProcedureSet(models.Model):
    """A surgery set or implant box selectable for a doctor+procedure combination."""
    doctor_procedure = models.ForeignKey(DoctorProcedure, on_delete=models.CASCADE, related_name='sets')
    surgery_set = models.ForeignKey(SurgerySet, null=True, blank=True, on_delete=models.CASCADE, related_name='doctor_links')
    implant_box = models.ForeignKey(ImplantBox, null=True, blank=True, on_delete=models.CASCADE, related_name='doctor_links')

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(surgery_set__isnull=False) | Q(implant_box__isnull=False),
                name='doctor_procedure_set_has_item',
            ),
        ]

    def __str__(self) -> str:
        return f"set {self.surgery_set_id} / box {self.implant_box_id} for {self.doctor_procedure_id}"


class CaseCounter(models.Model):
    """Last issued reference sequence per (country, year)."""
    country = models.CharField(max_length=32)
    year = models.PositiveIntegerField()
    current_counter = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'year')]

    def __str__(self) -> str:
        return f"{self.country}-{self.year}: {self.current_counter}"


class CaseBooking(models.Model):
    """One surgical case booking routed through the status workflow."""
    STATUS_CASE_BOOKED = 'Case Booked'
    STATUS_PREPARING_ORDER = 'Preparing Order'
    STATUS_ORDER_PREPARED = 'Order Prepared'
    STATUS_PENDING_DELIVERY_HOSPITAL = 'Pending Delivery (Hospital)'
    STATUS_DELIVERED_HOSPITAL = 'Delivered (Hospital)'
    STATUS_CASE_COMPLETED = 'Case Completed'
    STATUS_SALES_APPROVED = 'Sales Approved'
    STATUS_PENDING_DELIVERY_OFFICE = 'Pending Delivery (Office)'
    STATUS_DELIVERED_OFFICE = 'Delivered (Office)'
    STATUS_TO_BE_BILLED = 'To be billed'
    STATUS_CASE_CLOSED = 'Case Closed'
    STATUS_CASE_CANCELLED = 'Case Cancelled'
    STATUS_CHOICES = [
        (s, s) for s in (
            STATUS_CASE_BOOKED,
            STATUS_PREPARING_ORDER,
            STATUS_ORDER_PREPARED,
            STATUS_PENDING_DELIVERY_HOSPITAL,
            STATUS_DELIVERED_HOSPITAL,
            STATUS_CASE_COMPLETED,
            STATUS_SALES_APPROVED,
            STATUS_PENDING_DELIVERY_OFFICE,
            STATUS_DELIVERED_OFFICE,
            STATUS_TO_BE_BILLED,
            STATUS_CASE_CLOSED,
            STATUS_CASE_CANCELLED,
        )
    ]
    FINAL_STATUSES = (STATUS_CASE_CLOSED, STATUS_CASE_CANCELLED)

    case_reference_number = models.CharField(max_length=50, unique=True)
    hospital = models.CharField(max_length=200)
    department = models.CharField(max_length=100, db_index=True)
    date_of_surgery = models.DateField(db_index=True)
    time_of_procedure = models.TimeField(null=True, blank=True)
    procedure_type = models.CharField(max_length=100)
    procedure_name = models.CharField(max_length=200)
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='cases')
    doctor_name = models.CharField(max_length=200, blank=True)
    surgery_set_selection = models.JSONField(default=list, blank=True)
    implant_box = models.JSONField(default=list, blank=True)
    special_instruction = models.TextField(blank=True)
    status = models.CharField(max_length=50, choices=STATUS_CHOICES, default=STATUS_CASE_BOOKED, db_index=True)
    country = models.CharField(max_length=32, db_index=True)

    submitted_by = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='cases_submitted')
    submitted_at = models.DateTimeField(default=timezone.now)
    processed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='cases_processed')
    processed_at = models.DateTimeField(null=True, blank=True)
    process_order_details = models.TextField(blank=True)

    is_amended = models.BooleanField(default=False)
    amended_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='cases_amended')
    amended_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['country', 'status'], name='booking_cas_country_5a1f0e_idx'),
            models.Index(fields=['country', 'date_of_surgery'], name='booking_cas_country_9c3b21_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.case_reference_number} ({self.status})"


class StatusHistory(models.Model):
    """Append-only log of status transitions for a case."""
    case = models.ForeignKey(CaseBooking, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=50, choices=CaseBooking.STATUS_CHOICES)
    processed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='status_changes')
    timestamp = models.DateTimeField(default=timezone.now)
    details = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['case', 'status', 'timestamp'], name='booking_sta_case_id_7d2e4a_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['case'],
                condition=Q(status='Case Booked'),
                name='unique_case_booked_history',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.case_id}: {self.status} @ {self.timestamp:%F %T}"


def _amendment_id() -> str:
    return uuid.uuid4().hex


class AmendmentHistory(models.Model):
    """Append-only log of field-level edits for a case.

    ``changes`` holds a list of ``{field, oldValue, newValue}`` dicts.
    The primary key is a string so that a synthetic identifier can be
    written when the regular insert fails.
    """
    id = models.CharField(max_length=64, primary_key=True, default=_amendment_id)
    case = models.ForeignKey(CaseBooking, on_delete=models.CASCADE, related_name='amendment_history')
    amended_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='amendments')
    timestamp = models.DateTimeField(default=timezone.now)
    reason = models.TextField(blank=True)
    changes = models.JSONField(default=list)

    class Meta:
        indexes = [models.Index(fields=['case', 'timestamp'], name='booking_ame_case_id_3b8f61_idx')]

    def __str__(self) -> str:
        return f"amendment {self.id} case={self.case_id}"


class CaseBookingQuantity(models.Model):
    ITEM_SURGERY_SET = 'surgery_set'
    ITEM_IMPLANT_BOX = 'implant_box'
    ITEM_CHOICES = ((ITEM_SURGERY_SET, 'surgery_set'), (ITEM_IMPLANT_BOX, 'implant_box'))

    case = models.ForeignKey(CaseBooking, on_delete=models.CASCADE, related_name='quantities')
    item_type = models.CharField(max_length=16, choices=ITEM_CHOICES)
    item_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        unique_together = [('case', 'item_type', 'item_name')]

    def __str__(self) -> str:
        return f"{self.item_name} x{self.quantity}"


class DailyUsage(models.Model):
    """Per-day, per-department totals of booked sets and boxes."""
    usage_date = models.DateField()
    country = models.CharField(max_length=32)
    department = models.CharField(max_length=100)
    surgery_sets_total = models.PositiveIntegerField(default=0)
    implant_boxes_total = models.PositiveIntegerField(default=0)
    top_items = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('usage_date', 'country', 'department')]

    def __str__(self) -> str:
        return f"usage {self.usage_date} {self.country}/{self.department}"


class EmailNotificationRule(models.Model):
    """Who gets emailed, and with what template, when a case enters a status.

    ``recipients`` keys: ``roles``, ``specificEmails``, ``includeSubmitter``,
    ``departmentFilter``, ``requireSameDepartment``, ``adminOverride``.
    """
    country = models.CharField(max_length=32)
    status = models.CharField(max_length=50, choices=CaseBooking.STATUS_CHOICES)
    enabled = models.BooleanField(default=True)
    recipients = models.JSONField(default=dict, blank=True)
    subject = models.CharField(max_length=255, blank=True)
    body = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('country', 'status')]

    def __str__(self) -> str:
        return f"rule {self.country}/{self.status} ({'on' if self.enabled else 'off'})"


class SystemSettings(models.Model):
    """Single-row system configuration (``id`` is always 1)."""
    THEME_CHOICES = (('light', 'light'), ('dark', 'dark'), ('auto', 'auto'))

    id = models.PositiveSmallIntegerField(primary_key=True, default=1)
    app_name = models.CharField(max_length=100, default='TM Case Booking')
    maintenance_mode = models.BooleanField(default=False)
    cache_timeout = models.PositiveIntegerField(default=300)
    max_file_size = models.PositiveIntegerField(default=10, help_text="MB")
    session_timeout = models.PositiveIntegerField(default=3600, help_text="seconds")
    password_complexity = models.BooleanField(default=True)
    audit_log_retention = models.PositiveIntegerField(default=90, help_text="days")
    amendment_time_limit = models.PositiveIntegerField(default=1440, help_text="minutes, 0 disables")
    max_amendments_per_case = models.PositiveIntegerField(default=5, help_text="0 disables")
    email_notifications = models.BooleanField(default=True)
    default_theme = models.CharField(max_length=8, choices=THEME_CHOICES, default='light')
    default_language = models.CharField(max_length=8, default='en')
    updated_at = models.DateTimeField(auto_now=True)

    @classmethod
    def load(cls) -> 'SystemSettings':
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"settings ({self.app_name})"


class AuditLog(models.Model):
    STATUS_CHOICES = (('success', 'success'), ('warning', 'warning'), ('error', 'error'))

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    user_name = models.CharField(max_length=150, blank=True)
    user_role = models.CharField(max_length=32, blank=True)
    action = models.CharField(max_length=64)
    category = models.CharField(max_length=64)
    target = models.CharField(max_length=200, blank=True)
    details = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='success')
    metadata = models.JSONField(default=dict, blank=True)
    country = models.CharField(max_length=32, blank=True)
    department = models.CharField(max_length=100, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['category', 'timestamp'], name='booking_aud_categor_4e9a27_idx'),
            models.Index(fields=['country', 'timestamp'], name='booking_aud_country_b61d03_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_name}@{self.timestamp:%F %T}"
