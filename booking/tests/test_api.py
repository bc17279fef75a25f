"""
Integration tests for the case booking API.

These exercise booking, status changes, amendments and country
isolation through DRF's APIClient within the APITestCase base class.
"""

from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import (
    AmendmentHistory, AuditLog, CaseBooking, Doctor, DoctorProcedureSet, ImplantBox, StatusHistory, SurgerySet, User,
)
from ..services.catalog import link_procedure
from ..services.cases import submit_case
from .conftest import RecordingNotifier, case_data


class CaseBookingAPITests(APITestCase):
    def setUp(self) -> None:
        self.sales = User.objects.create_user(
            username="sales_sg", password="P@ssw0rd1", role="sales", email="sales@example.com",
            countries=["Singapore"], departments=["Spine"],
        )
        self.ops = User.objects.create_user(
            username="ops_sg", password="P@ssw0rd1", role="operations", countries=["Singapore"],
        )
        self.driver = User.objects.create_user(
            username="driver_sg", password="P@ssw0rd1", role="driver", countries=["Singapore"],
        )
        self.admin = User.objects.create_user(username="admin1", password="P@ssw0rd1", role="admin")

        notifier = RecordingNotifier()
        self.case_sg = submit_case(case_data(), self.sales, notifier=notifier)
        self.case_my = submit_case(
            case_data(country="Malaysia", hospital="Hospital Kuala Lumpur"), self.admin, notifier=notifier,
        )

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def booking_payload(self, **overrides):
        payload = {
            "hospital": "Mount Elizabeth Hospital",
            "department": "Spine",
            "dateOfSurgery": "2025-04-02",
            "timeOfProcedure": "08:00",
            "procedureType": "Lumbar Fusion",
            "procedureName": "L5-S1 ALIF",
            "doctorName": "Dr. Sarah Lim",
            "surgerySetSelection": ["ALIF DISC PREP"],
            "implantBox": ["Cage Box"],
            "country": "Singapore",
            "quantities": [{"itemType": "surgery_set", "itemName": "ALIF DISC PREP", "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    def test_booking_a_case_returns_reference(self):
        client = self.authenticate(self.sales)
        response = client.post("/api/cases", self.booking_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data["data"]
        self.assertTrue(data["caseReferenceNumber"].startswith("TMC-Singapore-"))
        self.assertEqual(data["status"], CaseBooking.STATUS_CASE_BOOKED)
        self.assertEqual([h["status"] for h in data["statusHistory"]], [CaseBooking.STATUS_CASE_BOOKED])
        self.assertEqual(data["quantities"][0]["quantity"], 2)

    def test_cannot_book_for_another_country(self):
        client = self.authenticate(self.sales)
        response = client.post("/api/cases", self.booking_payload(country="Malaysia"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["ok"])

    def test_drivers_cannot_book(self):
        client = self.authenticate(self.driver)
        response = client.post("/api/cases", self.booking_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_scoped_to_country(self):
        client = self.authenticate(self.sales)
        response = client.get("/api/cases")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [c["id"] for c in response.data["data"]]
        self.assertIn(self.case_sg.id, ids)
        self.assertNotIn(self.case_my.id, ids)
        self.assertEqual(response.data["pagination"]["total"], 1)

        response = self.authenticate(self.admin).get("/api/cases")
        self.assertEqual(response.data["pagination"]["total"], 2)

    def test_other_country_case_is_not_found(self):
        client = self.authenticate(self.sales)
        response = client.get(f"/api/cases/{self.case_my.id}")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "case_not_found")

        response = client.post(f"/api/cases/{self.case_my.id}/status",
                               {"status": CaseBooking.STATUS_ORDER_PREPARED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.case_my.refresh_from_db()
        self.assertEqual(self.case_my.status, CaseBooking.STATUS_CASE_BOOKED)

    def test_missing_case_is_not_found(self):
        response = self.authenticate(self.admin).get("/api/cases/987654")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_update_and_repeat(self):
        client = self.authenticate(self.ops)
        url = f"/api/cases/{self.case_sg.id}/status"
        response = client.post(url, {"status": CaseBooking.STATUS_ORDER_PREPARED, "details": "Picked"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["recorded"])
        self.assertEqual(response.data["data"]["status"], CaseBooking.STATUS_ORDER_PREPARED)

        response = client.post(url, {"status": CaseBooking.STATUS_ORDER_PREPARED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["recorded"])
        self.assertEqual(
            StatusHistory.objects.filter(case=self.case_sg, status=CaseBooking.STATUS_ORDER_PREPARED).count(), 1,
        )

    def test_unknown_status_is_rejected(self):
        client = self.authenticate(self.ops)
        response = client.post(f"/api/cases/{self.case_sg.id}/status", {"status": "Teleported"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {
            "ok": False,
            "error": {"code": "invalid_status", "message": response.data["error"]["message"]},
        })

    def test_status_change_is_audited_after_commit(self):
        client = self.authenticate(self.ops)
        with self.captureOnCommitCallbacks(execute=True):
            client.post(f"/api/cases/{self.case_sg.id}/status",
                        {"status": CaseBooking.STATUS_PREPARING_ORDER}, format="json")
        log = AuditLog.objects.get(action="Status Changed")
        self.assertEqual(log.user, self.ops)
        self.assertEqual(log.metadata["from"], CaseBooking.STATUS_CASE_BOOKED)

        response = self.authenticate(self.admin).get("/api/audit-logs", {"category": "Status Change"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"][0]["action"], "Status Changed")

    def test_audit_logs_are_admin_only(self):
        response = self.authenticate(self.ops).get("/api/audit-logs")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_process_order(self):
        response = self.authenticate(self.ops).post(
            f"/api/cases/{self.case_sg.id}/process", {"details": "2 sets, 1 box"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["processOrderDetails"], "2 sets, 1 box")
        self.assertEqual(response.data["data"]["processedBy"], "ops_sg")

        response = self.authenticate(self.sales).post(
            f"/api/cases/{self.case_sg.id}/process", {"details": "x"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_amend_records_changes(self):
        client = self.authenticate(self.sales)
        url = f"/api/cases/{self.case_sg.id}/amend"
        response = client.post(url, {"hospital": "Tan Tock Seng Hospital", "reason": "Venue moved"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["amended"])
        self.assertEqual(response.data["changes"], [
            {"field": "Hospital", "oldValue": "Singapore General Hospital", "newValue": "Tan Tock Seng Hospital"},
        ])
        self.assertTrue(response.data["data"]["isAmended"])

        response = client.post(url, {"hospital": "Tan Tock Seng Hospital"}, format="json")
        self.assertFalse(response.data["amended"])
        self.assertEqual(AmendmentHistory.objects.filter(case=self.case_sg).count(), 1)

    def test_closed_case_amendment_conflicts(self):
        CaseBooking.objects.filter(pk=self.case_sg.pk).update(status=CaseBooking.STATUS_CASE_CLOSED)
        response = self.authenticate(self.sales).post(
            f"/api/cases/{self.case_sg.id}/amend", {"hospital": "Elsewhere"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "amendment_not_allowed")

    def test_only_admin_can_delete(self):
        url = f"/api/cases/{self.case_sg.id}"
        response = self.authenticate(self.sales).delete(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(CaseBooking.objects.filter(pk=self.case_sg.pk).exists())

        response = self.authenticate(self.admin).delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["deleted"], self.case_sg.case_reference_number)
        self.assertFalse(CaseBooking.objects.filter(pk=self.case_sg.pk).exists())

    def test_quantities_roundtrip(self):
        client = self.authenticate(self.sales)
        url = f"/api/cases/{self.case_sg.id}/quantities"
        response = client.put(url, {"quantities": [
            {"itemType": "surgery_set", "itemName": "MIS LUMBAR", "quantity": 3},
            {"itemType": "implant_box", "itemName": "Pedicle Screw Box", "quantity": 0},
        ]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["data"]), 1)
        self.assertEqual(response.data["data"][0]["quantity"], 3)

    def test_sets_for_doctor_procedure(self):
        doctor = Doctor.objects.create(name="Dr. Sarah Lim", country="Singapore")
        link = link_procedure(doctor, "Lumbar Fusion")
        alif = SurgerySet.objects.create(country="Singapore", name="ALIF DISC PREP")
        retired = SurgerySet.objects.create(country="Singapore", name="OLD SET", is_active=False)
        box = ImplantBox.objects.create(country="Singapore", name="Cage Box")
        for kwargs in ({"surgery_set": alif}, {"surgery_set": alif}, {"surgery_set": retired}, {"implant_box": box}):
            DoctorProcedureSet.objects.create(doctor_procedure=link, **kwargs)

        client = self.authenticate(self.sales)
        response = client.get(f"/api/doctors/{doctor.id}/sets", {"procedureType": "Lumbar Fusion"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"], [
            {"item_type": "implant_box", "item_id": box.id, "item_name": "Cage Box"},
            {"item_type": "surgery_set", "item_id": alif.id, "item_name": "ALIF DISC PREP"},
        ])

        response = client.get(f"/api/doctors/{doctor.id}/sets", {"procedureType": "Cervical Disc"})
        self.assertEqual(response.data["data"], [])

    def test_next_reference_is_admin_only(self):
        response = self.authenticate(self.sales).post("/api/cases/next-reference", {"country": "Singapore"},
                                                      format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.authenticate(self.admin).post("/api/cases/next-reference", {"country": "Singapore"},
                                                      format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["reference"].endswith("-002"))
