import bleach
from rest_framework import serializers

from booking.models import CaseBooking, SystemSettings, User


class SystemSettingsSerializer(serializers.Serializer):
    appName = serializers.CharField(required=False, max_length=100)
    maintenanceMode = serializers.BooleanField(required=False)
    cacheTimeout = serializers.IntegerField(required=False, min_value=0, max_value=86400)
    maxFileSize = serializers.IntegerField(required=False, min_value=1, max_value=100)
    sessionTimeout = serializers.IntegerField(required=False, min_value=300, max_value=86400)
    passwordComplexity = serializers.BooleanField(required=False)
    auditLogRetention = serializers.IntegerField(required=False, min_value=0, max_value=3650)
    amendmentTimeLimit = serializers.IntegerField(required=False, min_value=0)
    maxAmendmentsPerCase = serializers.IntegerField(required=False, min_value=0, max_value=100)
    emailNotifications = serializers.BooleanField(required=False)
    defaultTheme = serializers.ChoiceField(required=False, choices=[c[0] for c in SystemSettings.THEME_CHOICES])
    defaultLanguage = serializers.CharField(required=False, max_length=8)

    def validate_appName(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class RecipientsSerializer(serializers.Serializer):
    roles = serializers.ListField(
        child=serializers.ChoiceField(choices=[c[0] for c in User.ROLE_CHOICES]), required=False, default=list,
    )
    specificEmails = serializers.ListField(child=serializers.EmailField(), required=False, default=list)
    includeSubmitter = serializers.BooleanField(required=False, default=False)
    departmentFilter = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    requireSameDepartment = serializers.BooleanField(required=False, default=False)
    adminOverride = serializers.BooleanField(required=False, default=True)


class EmailRuleSerializer(serializers.Serializer):
    country = serializers.CharField(max_length=32)
    status = serializers.ChoiceField(choices=[c[0] for c in CaseBooking.STATUS_CHOICES])
    enabled = serializers.BooleanField(required=False, default=True)
    recipients = RecipientsSerializer(required=False)
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')
    body = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_subject(self, v):
        return bleach.clean(v or '', strip=True)


class AuditQuerySerializer(serializers.Serializer):
    category = serializers.CharField(required=False)
    userId = serializers.IntegerField(required=False)
    action = serializers.CharField(required=False)
    country = serializers.CharField(required=False)
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)
