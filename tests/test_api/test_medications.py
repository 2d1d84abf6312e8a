"""
Tests for Medications API
==========================

Tests prescription, access control, due doses and discontinuation.
"""

import pytest
from datetime import date, timedelta
from fastapi import status
from fastapi.testclient import TestClient

from models import Medication


# ==================== FIXTURES ====================

@pytest.fixture
def medication_create_data(test_patient):
    """Sample data for creating a medication"""
    return {
        "patient_id": test_patient.id,
        "name": "Lisinopril",
        "dosage": "10mg",
        "form": "tablet",
        "frequency": "twice daily",
        "instructions": "Take in the morning",
        "start_date": str(date.today())
    }


# ==================== CREATE TESTS ====================

class TestCreateMedication:
    """Tests for medication creation endpoint"""

    @pytest.mark.api
    def test_create_medication_success(self, client: TestClient, patient_headers, medication_create_data):
        """Frequency-derived schedules and a full horizon of events"""
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=patient_headers)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "Lisinopril"
        assert data["generated_events"] == 14
        assert [s["scheduled_time"] for s in data["schedules"]] == ["08:00", "20:00"]
        assert data["schedules"][0]["days"]["sunday"] is True
        assert data["prescribed_by"] is None

    @pytest.mark.api
    def test_create_requires_authentication(self, client: TestClient, medication_create_data):
        response = client.post("/api/v1/medications/", json=medication_create_data)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        body = response.json()
        assert body["error"] is True
        assert body["status_code"] == 401

    @pytest.mark.api
    def test_create_rejects_invalid_token(self, client: TestClient, medication_create_data):
        response = client.post(
            "/api/v1/medications/", json=medication_create_data,
            headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.api
    def test_create_for_other_patient_denied(self, client: TestClient, other_patient_headers, medication_create_data):
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=other_patient_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Patient not found or access denied"

    @pytest.mark.api
    def test_doctor_needs_relationship(self, client: TestClient, doctor_headers, medication_create_data):
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=doctor_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.api
    def test_doctor_prescribes(self, client: TestClient, doctor_headers, care_link, test_doctor, medication_create_data):
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=doctor_headers)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["prescribed_by"] == test_doctor.id

    @pytest.mark.api
    def test_explicit_schedules(self, client: TestClient, patient_headers, medication_create_data):
        medication_create_data["frequency"] = "as directed"
        medication_create_data["schedules"] = [
            {"scheduled_time": "07:15"},
            {"scheduled_time": "21:45", "days": {"saturday": False, "sunday": False}},
        ]

        response = client.post("/api/v1/medications/", json=medication_create_data, headers=patient_headers)

        assert response.status_code == status.HTTP_201_CREATED
        schedules = response.json()["schedules"]
        assert [s["source"] for s in schedules] == ["explicit", "explicit"]
        assert schedules[1]["day_mask"] == 0b0011111

    @pytest.mark.api
    def test_invalid_schedule_time(self, client: TestClient, patient_headers, medication_create_data):
        medication_create_data["schedules"] = [{"scheduled_time": "7:15pm"}]

        response = client.post("/api/v1/medications/", json=medication_create_data, headers=patient_headers)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["field"] == "schedules[0].scheduled_time"

    @pytest.mark.api
    def test_invalid_form(self, client: TestClient, patient_headers, medication_create_data):
        medication_create_data["form"] = "suppository"
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=patient_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.api
    def test_end_before_start(self, client: TestClient, patient_headers, medication_create_data):
        medication_create_data["end_date"] = str(date.today() - timedelta(days=1))
        response = client.post("/api/v1/medications/", json=medication_create_data, headers=patient_headers)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["field"] == "end_date"


# ==================== READ TESTS ====================

class TestGetMedications:

    @pytest.mark.api
    def test_list_patient_medications(self, client: TestClient, patient_headers, test_medication, test_patient):
        response = client.get(f"/api/v1/medications/patient/{test_patient.id}", headers=patient_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 1
        assert data["active_count"] == 1
        assert data["medications"][0]["name"] == "Metformin"

    @pytest.mark.api
    def test_list_denied_for_other_patient(self, client: TestClient, other_patient_headers, test_patient):
        response = client.get(f"/api/v1/medications/patient/{test_patient.id}", headers=other_patient_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.api
    def test_get_medication(self, client: TestClient, patient_headers, test_medication):
        response = client.get(f"/api/v1/medications/{test_medication.id}", headers=patient_headers)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["schedules"]) == 2

    @pytest.mark.api
    def test_missing_and_inaccessible_look_the_same(self, client: TestClient, other_patient_headers, test_medication):
        hidden = client.get(f"/api/v1/medications/{test_medication.id}", headers=other_patient_headers)
        missing = client.get("/api/v1/medications/99999", headers=other_patient_headers)

        assert hidden.status_code == missing.status_code == status.HTTP_404_NOT_FOUND
        assert hidden.json()["message"] == missing.json()["message"] == "Medication not found or access denied"

    @pytest.mark.api
    def test_due_medications(self, client: TestClient, patient_headers, test_medication, test_patient):
        response = client.get(
            f"/api/v1/medications/patient/{test_patient.id}/due",
            params={"hours_ahead": 24},
            headers=patient_headers
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["hours_ahead"] == 24
        assert data["total"] == len(data["doses"])
        assert all(d["medication_id"] == test_medication.id for d in data["doses"])


# ==================== LIFECYCLE TESTS ====================

class TestMedicationLifecycle:

    @pytest.mark.api
    def test_generate_is_idempotent(self, client: TestClient, patient_headers, test_medication):
        first = client.post(f"/api/v1/medications/{test_medication.id}/generate", headers=patient_headers)
        second = client.post(f"/api/v1/medications/{test_medication.id}/generate", headers=patient_headers)

        assert first.json()["generated"] == 14
        assert second.json()["generated"] == 0

    @pytest.mark.api
    def test_discontinue(self, client: TestClient, patient_headers, test_medication, db_session):
        response = client.post(
            f"/api/v1/medications/{test_medication.id}/discontinue",
            json={"reason": "Dizziness"},
            headers=patient_headers
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["is_active"] is False
        assert data["discontinued_reason"] == "Dizziness"
        assert data["end_date"] == str(date.today())

        db_session.expire_all()
        assert db_session.get(Medication, test_medication.id).is_active is False

    @pytest.mark.api
    def test_discontinue_in_future_rejected(self, client: TestClient, patient_headers, test_medication):
        response = client.post(
            f"/api/v1/medications/{test_medication.id}/discontinue",
            json={"end_date": str(date.today() + timedelta(days=2))},
            headers=patient_headers
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
