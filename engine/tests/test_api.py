"""
Integration tests for the engine HTTP API.

These tests exercise the booking lifecycle, emergency admissions and the
OPD queue end to end through Django REST framework's APIClient, including
the error envelope and role checks.

To run the tests:

```
pytest -q engine/tests
```
"""

from datetime import timedelta

from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from engine.models import EmergencyAdmission, Facility, QueueEntry, Reservation, ResourceUnit, User


class EngineAPITests(APITestCase):
    def setUp(self) -> None:
        """Two facilities, a handful of beds and one user per role."""
        cache.clear()
        self.facility = Facility.objects.create(name="City General", city="Pune")
        self.clinic = Facility.objects.create(name="Northside Clinic", city="Mumbai", emergency_available=False)
        for n in (1, 2):
            ResourceUnit.objects.create(facility=self.facility, category="General", unit_number=f"G00{n}")
        ResourceUnit.objects.create(facility=self.facility, category="ICU", unit_number="I001")
        ResourceUnit.objects.create(facility=self.clinic, category="General", unit_number="G001")

        self.patient = User.objects.create_user(username="patient1", password="patientpass", role="patient")
        self.other = User.objects.create_user(username="patient2", password="patientpass", role="patient")
        self.staff = User.objects.create_user(username="staff1", password="staffpass", role="staff")
        self.admin = User.objects.create_user(username="admin1", password="adminpass", role="admin")

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def book(self, client, category="General", facility=None):
        return client.post("/api/reservations", {
            "facilityId": (facility or self.facility).id,
            "category": category,
            "patientName": "Asha Rao",
            "patientPhone": "9800000001",
            "patientAge": 42,
        }, format="json")

    def test_booking_lifecycle(self):
        client = self.authenticate(self.patient)
        response = self.book(client)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        rid = response.data["reservation"]["id"]
        self.assertEqual(response.data["reservation"]["status"], "provisional")
        self.assertIsNone(response.data["reservation"]["unitId"])

        response = client.post(f"/api/reservations/{rid}/confirm")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["reservation"]["status"], "confirmed")
        self.assertEqual(response.data["reservation"]["unitNumber"], "G001")

        staff = self.authenticate(self.staff)
        response = staff.post(f"/api/reservations/{rid}/admit")
        self.assertEqual(response.data["reservation"]["status"], "admitted")
        response = staff.post(f"/api/reservations/{rid}/discharge")
        self.assertIsNotNone(response.data["reservation"]["dischargedAt"])
        self.assertFalse(ResourceUnit.objects.get(unit_number="G001", facility=self.facility).is_occupied)

    def test_only_the_owner_confirms(self):
        rid = self.book(self.authenticate(self.patient)).data["reservation"]["id"]
        response = self.authenticate(self.other).post(f"/api/reservations/{rid}/confirm")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"]["code"], "authorization")
        self.assertEqual(Reservation.objects.get(id=rid).status, "provisional")

    def test_expired_confirm_returns_410(self):
        client = self.authenticate(self.patient)
        rid = self.book(client).data["reservation"]["id"]
        Reservation.objects.filter(id=rid).update(provisional_expiry=timezone.now() - timedelta(minutes=1))
        response = client.post(f"/api/reservations/{rid}/confirm")
        self.assertEqual(response.status_code, status.HTTP_410_GONE)
        self.assertEqual(response.data["ok"], False)
        self.assertEqual(response.data["error"]["code"], "expired")
        response = client.get(f"/api/reservations/{rid}")
        self.assertEqual(response.data["reservation"]["status"], "expired")

    def test_no_beds_is_a_capacity_conflict(self):
        client = self.authenticate(self.patient)
        rid = self.book(client, category="ICU").data["reservation"]["id"]
        client.post(f"/api/reservations/{rid}/confirm")
        response = self.book(self.authenticate(self.other), category="ICU")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "capacity")

    def test_invalid_input_is_rejected(self):
        client = self.authenticate(self.patient)
        response = client.post("/api/reservations", {"facilityId": self.facility.id, "category": "Suite"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "validation")
        response = self.book(client, facility=Facility(id=987654))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_confirmed_frees_the_bed(self):
        client = self.authenticate(self.patient)
        rid = self.book(client, category="ICU").data["reservation"]["id"]
        client.post(f"/api/reservations/{rid}/confirm")
        response = self.client.get(f"/api/facilities/{self.facility.id}/capacity")
        icu = [c for c in response.data["byCategory"] if c["category"] == "ICU"][0]
        self.assertEqual(icu["available"], 0)

        response = client.post(f"/api/reservations/{rid}/cancel")
        self.assertEqual(response.data["reservation"]["status"], "cancelled")
        response = self.client.get(f"/api/facilities/{self.facility.id}/capacity")
        icu = [c for c in response.data["byCategory"] if c["category"] == "ICU"][0]
        self.assertEqual(icu["available"], 1)

    def test_my_reservations_and_facility_listing(self):
        client = self.authenticate(self.patient)
        self.book(client)
        self.book(self.authenticate(self.other))
        response = client.get("/api/reservations/mine")
        self.assertEqual(response.data["count"], 1)
        response = self.authenticate(self.staff).get(
            f"/api/facilities/{self.facility.id}/reservations", {"status": "provisional"}
        )
        self.assertEqual(response.data["count"], 2)

    def test_emergency_admission_and_capacity_rejection(self):
        payload = {
            "facilityId": self.facility.id,
            "category": "ICU",
            "priority": "critical",
            "emergencyType": "Cardiac Arrest",
            "symptoms": "collapsed, no pulse",
            "vitalSigns": {"heartRate": 0, "oxygenLevel": 70},
            "patientName": "Unknown",
        }
        response = self.authenticate(self.patient).post("/api/emergencies", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["emergency"]["unitNumber"], "I001")
        self.assertEqual(response.data["emergency"]["status"], "admitted")

        response = self.authenticate(self.other).post("/api/emergencies", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data["error"]["code"], "capacity")
        self.assertEqual(EmergencyAdmission.objects.count(), 1)

    def test_emergency_not_offered(self):
        response = self.authenticate(self.patient).post("/api/emergencies", {
            "facilityId": self.clinic.id,
            "category": "General",
            "priority": "high",
            "emergencyType": "Burns",
            "symptoms": "second degree burns",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "not_available")

    def test_staff_triage_and_status_updates(self):
        patient = self.authenticate(self.patient)
        base = {"facilityId": self.facility.id, "category": "General", "emergencyType": "Other Emergency",
                "symptoms": "fall"}
        first = patient.post("/api/emergencies", {**base, "priority": "medium"}, format="json").data["emergency"]
        second = patient.post("/api/emergencies", {**base, "priority": "critical"}, format="json").data["emergency"]

        staff = self.authenticate(self.staff)
        response = staff.get("/api/emergencies", {"facilityId": self.facility.id})
        self.assertEqual([e["id"] for e in response.data["emergencies"]], [second["id"], first["id"]])

        response = staff.post(f"/api/emergencies/{second['id']}/status", {"status": "discharged"}, format="json")
        self.assertEqual(response.data["emergency"]["status"], "discharged")
        response = staff.post(f"/api/emergencies/{second['id']}/status", {"status": "treated"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "invalid_state")

        response = self.authenticate(self.other).get(f"/api/emergencies/{first['id']}")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = patient.get("/api/emergencies/mine")
        self.assertEqual(response.data["count"], 2)

        response = self.authenticate(self.admin).get("/api/emergencies/stats")
        self.assertEqual(response.data["stats"]["total"], 2)

    def test_opd_queue_flow(self):
        users = [self.patient, self.other, User.objects.create_user(username="patient3", password="x")]
        tokens = []
        for u in users:
            response = self.authenticate(u).post("/api/opd/join", {
                "facilityId": self.facility.id, "patientName": u.username,
            }, format="json")
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
            tokens.append(response.data["tokenNumber"])
        self.assertEqual(tokens, [1, 2, 3])

        response = self.authenticate(self.staff).post(f"/api/opd/{self.facility.id}/advance")
        self.assertEqual(response.data["entry"]["tokenNumber"], 1)

        response = self.authenticate(self.other).get("/api/opd/my-position")
        self.assertTrue(response.data["inQueue"])
        self.assertEqual(response.data["position"], 1)

        response = self.client.get(f"/api/opd/{self.facility.id}/status")
        self.assertEqual(response.data["currentToken"], 1)
        self.assertEqual(response.data["queueLength"], 3)

        entry_id = QueueEntry.objects.get(requester=users[2]).id
        response = self.authenticate(users[2]).post(f"/api/opd/entries/{entry_id}/leave")
        self.assertEqual(response.data["entry"]["status"], "cancelled")

    def test_empty_advance_is_informational(self):
        response = self.authenticate(self.staff).post(f"/api/opd/{self.facility.id}/advance")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data["entry"])
        self.assertEqual(response.data["message"], "queue empty")

    def test_not_in_queue(self):
        response = self.authenticate(self.patient).get("/api/opd/my-position")
        self.assertFalse(response.data["inQueue"])

    def test_unit_directory(self):
        response = self.client.get(f"/api/facilities/{self.facility.id}/units", {"category": "General"})
        self.assertEqual([u["unitNumber"] for u in response.data["units"]], ["G001", "G002"])

        staff = self.authenticate(self.staff)
        response = staff.post(f"/api/facilities/{self.facility.id}/units",
                              {"category": "Private", "unitNumber": "P001", "price": "4500.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        unit_id = response.data["unit"]["id"]
        response = staff.post(f"/api/facilities/{self.facility.id}/units",
                              {"category": "ICU", "unitNumber": "P001"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = staff.post(f"/api/units/{unit_id}/update", {"floor": 3}, format="json")
        self.assertEqual(response.data["unit"]["floor"], 3)

        client = self.authenticate(self.patient)
        rid = self.book(client, category="Private").data["reservation"]["id"]
        client.post(f"/api/reservations/{rid}/confirm")
        response = staff.post(f"/api/units/{unit_id}/delete")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(ResourceUnit.objects.filter(id=unit_id).exists())

    def test_facility_directory(self):
        response = self.client.get("/api/facilities")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["facilities"]), 2)
        response = self.authenticate(self.admin).post("/api/facilities", {"name": "New Hope", "city": "Nagpur"},
                                                      format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["facility"]["opdAvailable"])

    def test_healthz(self):
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])
