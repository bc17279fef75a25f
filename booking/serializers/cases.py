import bleach
from rest_framework import serializers

from booking.models import CaseBooking, CaseBookingQuantity


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class QuantitySerializer(serializers.Serializer):
    itemType = serializers.ChoiceField(choices=[c[0] for c in CaseBookingQuantity.ITEM_CHOICES])
    itemName = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=0, max_value=999)

    def to_internal_value(self, data):
        vd = super().to_internal_value(data)
        return {'item_type': vd['itemType'], 'item_name': _clean(vd['itemName']), 'quantity': vd['quantity']}


class CaseCreateSerializer(serializers.Serializer):
    hospital = serializers.CharField(max_length=200)
    department = serializers.CharField(max_length=100)
    dateOfSurgery = serializers.DateField()
    timeOfProcedure = serializers.TimeField(required=False, allow_null=True)
    procedureType = serializers.CharField(max_length=100)
    procedureName = serializers.CharField(max_length=200)
    doctorId = serializers.IntegerField(required=False, allow_null=True)
    doctorName = serializers.CharField(required=False, allow_blank=True, max_length=200)
    surgerySetSelection = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    implantBox = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    specialInstruction = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    country = serializers.CharField(max_length=32)
    quantities = QuantitySerializer(many=True, required=False)

    def validate_hospital(self, v):
        return _clean(v)

    def validate_procedureName(self, v):
        return _clean(v)

    def validate_doctorName(self, v):
        return _clean(v)

    def validate_specialInstruction(self, v):
        return _clean(v)

    def validate_country(self, v):
        v = (v or '').strip()
        user = self.context.get('user')
        countries = getattr(user, 'countries', None) or []
        if user is not None and getattr(user, 'role', '') not in ('admin', 'it') and v not in countries:
            raise serializers.ValidationError('You cannot book cases for this country.')
        return v

    def to_case_data(self):
        vd = self.validated_data
        return {
            'hospital': vd['hospital'],
            'department': vd['department'],
            'date_of_surgery': vd['dateOfSurgery'],
            'time_of_procedure': vd.get('timeOfProcedure'),
            'procedure_type': vd['procedureType'],
            'procedure_name': vd['procedureName'],
            'doctor_id': vd.get('doctorId'),
            'doctor_name': vd.get('doctorName', ''),
            'surgery_set_selection': vd.get('surgerySetSelection', []),
            'implant_box': vd.get('implantBox', []),
            'special_instruction': vd.get('specialInstruction', ''),
            'country': vd['country'],
        }


class CaseListQuerySerializer(serializers.Serializer):
    country = serializers.CharField(required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in CaseBooking.STATUS_CHOICES], required=False)
    department = serializers.CharField(required=False)
    hospital = serializers.CharField(required=False)
    submittedBy = serializers.IntegerField(required=False)
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)

    def to_filters(self):
        vd = self.validated_data
        return {
            'country': vd.get('country'),
            'status': vd.get('status'),
            'department': vd.get('department'),
            'hospital': vd.get('hospital'),
            'submitted_by': vd.get('submittedBy'),
            'date_from': vd.get('dateFrom'),
            'date_to': vd.get('dateTo'),
            'q': (vd.get('q') or '').strip() or None,
        }


class StatusUpdateSerializer(serializers.Serializer):
    # validated by the status service so that unknown values map to invalid_status
    status = serializers.CharField(max_length=50)
    details = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    attachments = serializers.ListField(child=serializers.CharField(max_length=500), required=False)

    def validate_details(self, v):
        return _clean(v)


class ProcessOrderSerializer(serializers.Serializer):
    details = serializers.CharField(max_length=4000)

    def validate_details(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Order details are required.')
        return v


class AmendmentSerializer(serializers.Serializer):
    hospital = serializers.CharField(required=False, max_length=200)
    department = serializers.CharField(required=False, max_length=100)
    dateOfSurgery = serializers.DateField(required=False)
    procedureType = serializers.CharField(required=False, max_length=100)
    procedureName = serializers.CharField(required=False, max_length=200)
    doctorName = serializers.CharField(required=False, allow_blank=True, max_length=200)
    timeOfProcedure = serializers.TimeField(required=False, allow_null=True)
    surgerySetSelection = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    implantBox = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    specialInstruction = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    FIELD_NAMES = {
        'hospital': 'hospital',
        'department': 'department',
        'dateOfSurgery': 'date_of_surgery',
        'procedureType': 'procedure_type',
        'procedureName': 'procedure_name',
        'doctorName': 'doctor_name',
        'timeOfProcedure': 'time_of_procedure',
        'surgerySetSelection': 'surgery_set_selection',
        'implantBox': 'implant_box',
        'specialInstruction': 'special_instruction',
    }

    def validate(self, attrs):
        for key in ('hospital', 'procedureName', 'doctorName', 'specialInstruction', 'reason'):
            if key in attrs:
                attrs[key] = _clean(attrs[key])
        return attrs

    def to_changes(self):
        return {field: self.validated_data[key] for key, field in self.FIELD_NAMES.items() if key in self.validated_data}
