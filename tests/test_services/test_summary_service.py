"""
Tests for Summary Service
Tests the combined vitals / intake health overview
"""

import pytest
from datetime import datetime, timedelta

from models import IntakeStatus, VitalReading
from services.summary_service import HealthSummaryService


@pytest.fixture
def summary_service():
    return HealthSummaryService()


@pytest.fixture
def now():
    return datetime.now().replace(microsecond=0)


def add_reading(db_session, patient_id, recorded_at, **values):
    reading = VitalReading(
        patient_id=patient_id, recorded_by=101, recorded_by_role="patient",
        recorded_at=recorded_at, **values
    )
    db_session.add(reading)
    db_session.commit()
    return reading


class TestHealthSummary:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_combines_vitals_and_intake(self, summary_service, make_event, test_patient, db_session, now):
        add_reading(db_session, test_patient.id, now - timedelta(days=2), systolic_bp=120, heart_rate=70)
        latest = add_reading(db_session, test_patient.id, now - timedelta(hours=1), systolic_bp=130)
        add_reading(db_session, test_patient.id, now - timedelta(days=45), systolic_bp=200)
        make_event(now - timedelta(days=1), status=IntakeStatus.TAKEN)
        make_event(now - timedelta(days=2), status=IntakeStatus.MISSED)

        summary = await summary_service.get_health_summary(test_patient.id, days=30, now=now, db=db_session)

        vitals = summary["vitals"]
        assert vitals["reading_count"] == 2
        assert vitals["last_recorded"] == latest.recorded_at
        assert vitals["averages"]["systolic_bp"] == 125.0
        assert vitals["averages"]["heart_rate"] == 70.0
        assert vitals["averages"]["temperature"] is None

        adherence = summary["adherence"]
        assert (adherence["total_doses"], adherence["taken_doses"]) == (2, 1)
        assert adherence["by_status"]["missed"] == 1
        assert summary["period_start"] == now - timedelta(days=30)

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_empty_period(self, summary_service, test_patient, db_session, now):
        summary = await summary_service.get_health_summary(test_patient.id, days=7, now=now, db=db_session)

        assert summary["vitals"]["reading_count"] == 0
        assert summary["vitals"]["last_recorded"] is None
        assert summary["adherence"]["adherence_rate"] == 0.0
