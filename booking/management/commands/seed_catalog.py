"""
Management command to load a starter catalog for one country.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from booking.models import (
    CaseBooking, CodeTable, Doctor, DoctorProcedureSet, EmailNotificationRule, ImplantBox, SurgerySet, SystemSettings,
)
from booking.services.catalog import link_procedure

HOSPITALS = ['Mount Elizabeth Hospital', 'Singapore General Hospital', 'Tan Tock Seng Hospital']
DEPARTMENTS = ['Cardiology', 'Neurosurgery', 'Orthopedics', 'Spine']
SURGERY_SETS = ['ALIF DISC PREP', 'CAPRI EXPANDABLE', 'MIS LUMBAR', 'CERVICAL PLATING']
IMPLANT_BOXES = ['Pedicle Screw Box', 'Interbody Cage Box', 'Cervical Plate Box']
DOCTORS = {
    'Dr. Tan Wei Ming': ['Spine', 'Lumbar Fusion'],
    'Dr. Sarah Lim': ['Cervical Fusion', 'Spine'],
    'Dr. Rajesh Kumar': ['Knee Replacement', 'Hip Replacement'],
}

BOOKED_RULE_BODY = """Dear Team,

A new case has been booked and requires your attention.

Case Reference: {{caseReferenceNumber}}
Hospital: {{hospital}}
Department: {{department}}
Doctor: {{doctorName}}
Procedure Type: {{procedureType}}
Surgery Date: {{dateOfSurgery}} {{timeOfProcedure}}

Ordered Items with Quantities:
{{quantityInformation}}

Special Instructions: {{specialInstruction}}
"""


class Command(BaseCommand):
    help = 'Load hospitals, departments, doctors, sets and a default email rule for a country'

    def add_arguments(self, parser):
        parser.add_argument('--country', default='Singapore')

    @transaction.atomic
    def handle(self, *args, **options):
        country = options['country']
        SystemSettings.load()

        for name in HOSPITALS:
            CodeTable.objects.get_or_create(country=country, table_type=CodeTable.TYPE_HOSPITALS, code=name,
                                            defaults={'display_name': name})
        for name in DEPARTMENTS:
            CodeTable.objects.get_or_create(country=country, table_type=CodeTable.TYPE_DEPARTMENTS, code=name,
                                            defaults={'display_name': name})

        sets = [SurgerySet.objects.get_or_create(country=country, name=n)[0] for n in SURGERY_SETS]
        boxes = [ImplantBox.objects.get_or_create(country=country, name=n)[0] for n in IMPLANT_BOXES]

        links = 0
        for i, (doctor_name, procedures) in enumerate(DOCTORS.items()):
            doctor, _ = Doctor.objects.get_or_create(name=doctor_name, country=country)
            for procedure in procedures:
                dp = link_procedure(doctor, procedure)
                DoctorProcedureSet.objects.get_or_create(doctor_procedure=dp, surgery_set=sets[i % len(sets)])
                DoctorProcedureSet.objects.get_or_create(doctor_procedure=dp, implant_box=boxes[i % len(boxes)])
                links += 1

        EmailNotificationRule.objects.get_or_create(
            country=country, status=CaseBooking.STATUS_CASE_BOOKED,
            defaults={
                'recipients': {'roles': ['operations', 'operations-manager'], 'includeSubmitter': True},
                'subject': 'New Case Booked: {{caseReferenceNumber}} - {{hospital}} - {{doctorName}}',
                'body': BOOKED_RULE_BODY,
            },
        )
        self.stdout.write(self.style.SUCCESS(
            f"Seeded {country}: {len(HOSPITALS)} hospitals, {len(DEPARTMENTS)} departments, "
            f"{len(DOCTORS)} doctors, {links} doctor procedures"
        ))
