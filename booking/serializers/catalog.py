import bleach
from rest_framework import serializers

from booking.models import CodeTable


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class CountryQuerySerializer(serializers.Serializer):
    country = serializers.CharField()
    includeInactive = serializers.BooleanField(required=False, default=False)


class CodeTableSerializer(serializers.Serializer):
    country = serializers.CharField(max_length=32)
    tableType = serializers.ChoiceField(choices=[c[0] for c in CodeTable.TYPE_CHOICES])
    code = serializers.CharField(max_length=100, required=False, allow_blank=True)
    displayName = serializers.CharField(max_length=200)
    isActive = serializers.BooleanField(required=False, default=True)

    def validate_displayName(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Name is required.')
        return v

    def validate(self, attrs):
        # codes default to the display name, as the booking forms store names
        attrs['code'] = _clean(attrs.get('code')) or attrs['displayName']
        return attrs


class DoctorSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    country = serializers.CharField(max_length=32)
    specialties = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list)
    isActive = serializers.BooleanField(required=False, default=True)

    def validate_name(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Doctor name must be at least 2 characters.')
        return v


class ProcedureTypeSerializer(serializers.Serializer):
    country = serializers.CharField(max_length=32)
    name = serializers.CharField(max_length=100)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Name is required.')
        return v


class DoctorProcedureSerializer(serializers.Serializer):
    procedureType = serializers.CharField(max_length=100)


class CatalogItemSerializer(serializers.Serializer):
    country = serializers.CharField(max_length=32)
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    isActive = serializers.BooleanField(required=False, default=True)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Name is required.')
        return v

    def validate_description(self, v):
        return _clean(v)


class SetAssignmentSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    procedureType = serializers.CharField(max_length=100)
    country = serializers.CharField(max_length=32)
    surgerySetId = serializers.IntegerField(required=False, allow_null=True)
    implantBoxId = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if bool(attrs.get('surgerySetId')) == bool(attrs.get('implantBoxId')):
            raise serializers.ValidationError('Give exactly one of surgerySetId or implantBoxId.')
        return attrs
