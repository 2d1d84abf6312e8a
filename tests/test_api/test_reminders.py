"""
Tests for Reminders and Care Team API
======================================

Tests the reminder feed, read/snooze state, care-team management and health.
"""

import pytest
from datetime import datetime, timedelta
from fastapi import status
from fastapi.testclient import TestClient


@pytest.fixture
def now():
    return datetime.now().replace(microsecond=0)


class TestFeed:

    @pytest.mark.api
    def test_feed_orders_by_urgency(self, client: TestClient, patient_headers, make_event, test_patient, now):
        later = make_event(now + timedelta(hours=3))
        overdue = make_event(now - timedelta(minutes=1), schedule_index=1)

        response = client.get(f"/api/v1/reminders/patient/{test_patient.id}", headers=patient_headers)

        assert response.status_code == status.HTTP_200_OK
        keys = [item["key"] for item in response.json()["items"]]
        assert keys.index(f"intake:{overdue.id}") < keys.index(f"intake:{later.id}")

    @pytest.mark.api
    def test_feed_denied_for_other_patient(self, client: TestClient, other_patient_headers, test_patient):
        response = client.get(f"/api/v1/reminders/patient/{test_patient.id}", headers=other_patient_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.api
    def test_mark_read_and_read_all(self, client: TestClient, patient_headers, make_event, test_patient, now):
        first = make_event(now + timedelta(hours=1))
        make_event(now + timedelta(hours=2), schedule_index=1)

        read = client.patch(
            f"/api/v1/reminders/patient/{test_patient.id}/items/intake:{first.id}/read",
            headers=patient_headers
        )
        assert read.status_code == status.HTTP_200_OK
        assert read.json()["read"] is True

        read_all = client.patch(f"/api/v1/reminders/patient/{test_patient.id}/read-all", headers=patient_headers)
        assert read_all.json() == {"marked": 1}

        feed = client.get(f"/api/v1/reminders/patient/{test_patient.id}", headers=patient_headers).json()
        assert feed["unread_count"] == 0

    @pytest.mark.api
    def test_malformed_key(self, client: TestClient, patient_headers, test_patient):
        response = client.patch(
            f"/api/v1/reminders/patient/{test_patient.id}/items/bogus/read",
            headers=patient_headers
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["field"] == "key"

    @pytest.mark.api
    def test_snooze(self, client: TestClient, patient_headers, make_event, now):
        event = make_event(now + timedelta(minutes=5))

        response = client.post(
            f"/api/v1/reminders/events/{event.id}/snooze",
            json={"minutes": 30},
            headers=patient_headers
        )

        assert response.status_code == status.HTTP_200_OK
        snoozed_until = datetime.fromisoformat(response.json()["snoozed_until"])
        assert snoozed_until == now + timedelta(minutes=35)

    @pytest.mark.api
    def test_snooze_other_patients_event(self, client: TestClient, other_patient_headers, make_event, now):
        event = make_event(now + timedelta(minutes=5))
        response = client.post(f"/api/v1/reminders/events/{event.id}/snooze", headers=other_patient_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestCareTeam:

    @pytest.mark.api
    def test_assign_list_unassign(self, client: TestClient, doctor_headers, test_patient):
        assigned = client.post(f"/api/v1/care-team/patients/{test_patient.id}", headers=doctor_headers)
        assert assigned.status_code == status.HTTP_201_CREATED

        listed = client.get("/api/v1/care-team/patients", headers=doctor_headers).json()
        assert listed["pagination"]["total"] == 1
        assert listed["patients"][0]["id"] == test_patient.id

        feed = client.get(f"/api/v1/reminders/patient/{test_patient.id}", headers=doctor_headers)
        assert feed.status_code == status.HTTP_200_OK

        removed = client.delete(f"/api/v1/care-team/patients/{test_patient.id}", headers=doctor_headers)
        assert removed.json()["is_active"] is False

        feed = client.get(f"/api/v1/reminders/patient/{test_patient.id}", headers=doctor_headers)
        assert feed.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.api
    def test_patients_cannot_manage_care_team(self, client: TestClient, patient_headers, test_patient):
        response = client.post(f"/api/v1/care-team/patients/{test_patient.id}", headers=patient_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestHealth:

    @pytest.mark.api
    def test_health_is_public(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["checks"]["database"]["status"] == "up"
