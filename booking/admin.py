"""
Django admin registrations for the booking models.

Histories are shown read-only inline on the case page; they are
append-only and are never edited by hand.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AmendmentHistory, AuditLog, CaseBooking, CaseBookingQuantity, CaseCounter, CodeTable, DailyUsage, Doctor,
    DoctorProcedure, EmailNotificationRule, ImplantBox, ProcedureType, StatusHistory, SurgerySet, SystemSettings,
    User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active')
    fieldsets = BaseUserAdmin.fieldsets + (('Booking scope', {'fields': ('role', 'countries', 'departments')}),)


class StatusHistoryInline(admin.TabularInline):
    model = StatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ('status', 'processed_by', 'timestamp', 'details', 'attachments')


class AmendmentHistoryInline(admin.TabularInline):
    model = AmendmentHistory
    extra = 0
    can_delete = False
    readonly_fields = ('id', 'amended_by', 'timestamp', 'reason', 'changes')


class QuantityInline(admin.TabularInline):
    model = CaseBookingQuantity
    extra = 0


@admin.register(CaseBooking)
class CaseBookingAdmin(admin.ModelAdmin):
    list_display = ('case_reference_number', 'country', 'hospital', 'department', 'date_of_surgery', 'status')
    list_filter = ('country', 'status', 'is_amended')
    search_fields = ('case_reference_number', 'hospital', 'doctor_name', 'procedure_name')
    readonly_fields = ('case_reference_number',)
    inlines = [StatusHistoryInline, AmendmentHistoryInline, QuantityInline]


@admin.register(CaseCounter)
class CaseCounterAdmin(admin.ModelAdmin):
    list_display = ('country', 'year', 'current_counter', 'updated_at')


@admin.register(CodeTable)
class CodeTableAdmin(admin.ModelAdmin):
    list_display = ('country', 'table_type', 'code', 'display_name', 'is_active')
    list_filter = ('country', 'table_type', 'is_active')
    search_fields = ('code', 'display_name')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('name', 'country', 'is_active')
    list_filter = ('country', 'is_active')
    search_fields = ('name',)


@admin.register(ProcedureType)
class ProcedureTypeAdmin(admin.ModelAdmin):
    list_display = ('name', 'country', 'is_hidden')
    list_filter = ('country', 'is_hidden')


admin.site.register(DoctorProcedure)
admin.site.register(SurgerySet)
admin.site.register(ImplantBox)
admin.site.register(DailyUsage)


@admin.register(EmailNotificationRule)
class EmailNotificationRuleAdmin(admin.ModelAdmin):
    list_display = ('country', 'status', 'enabled', 'updated_at')
    list_filter = ('country', 'enabled')


@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    list_display = ('app_name', 'maintenance_mode', 'email_notifications', 'updated_at')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'user_name', 'action', 'category', 'status', 'country')
    list_filter = ('category', 'status', 'country')
    search_fields = ('user_name', 'action', 'target')
