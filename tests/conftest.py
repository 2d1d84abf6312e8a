"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all CareLedger tests.
Fixtures include database sessions, test clients, sample records and tokens.
"""

import os
import sys
from datetime import datetime, date, timedelta
from typing import Generator, Dict

# Settings are read at import time; keep tests off the on-disk database
# and off the background scans.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCANS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from models import (
    Patient, Doctor, DoctorPatient, Medication, DoseSchedule, IntakeEvent,
    VitalThreshold, ActorRole, MedicationForm, IntakeStatus, ScheduleSource, VitalParameter
)
from security import create_access_token
from services.access_service import Actor
from api.deps import get_db as api_get_db
from app import app


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session"""
    session = session_factory()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[api_get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def test_patient(db_session: Session) -> Patient:
    """Patient linked to identity 101"""
    patient = Patient(user_id=101, first_name="Maria", last_name="Lopez", date_of_birth=date(1958, 3, 2))
    db_session.add(patient)
    db_session.commit()
    db_session.refresh(patient)
    return patient


@pytest.fixture
def other_patient(db_session: Session) -> Patient:
    """Unrelated patient linked to identity 102"""
    patient = Patient(user_id=102, first_name="Tom", last_name="Baker", date_of_birth=date(1971, 8, 19))
    db_session.add(patient)
    db_session.commit()
    db_session.refresh(patient)
    return patient


@pytest.fixture
def test_doctor(db_session: Session) -> Doctor:
    """Doctor linked to identity 201"""
    doctor = Doctor(user_id=201, first_name="Ada", last_name="Nwosu", specialization="Cardiology")
    db_session.add(doctor)
    db_session.commit()
    db_session.refresh(doctor)
    return doctor


@pytest.fixture
def care_link(db_session: Session, test_doctor: Doctor, test_patient: Patient) -> DoctorPatient:
    """Active relationship between test_doctor and test_patient"""
    link = DoctorPatient(doctor_id=test_doctor.id, patient_id=test_patient.id, is_active=True)
    db_session.add(link)
    db_session.commit()
    db_session.refresh(link)
    return link


@pytest.fixture
def test_medication(db_session: Session, test_patient: Patient) -> Medication:
    """Active twice-daily medication with 08:00 and 20:00 schedules"""
    medication = Medication(
        patient_id=test_patient.id,
        name="Metformin",
        dosage="500mg",
        form=MedicationForm.TABLET,
        frequency="twice daily",
        instructions="Take with meals",
        start_date=date.today() - timedelta(days=30),
        is_active=True
    )
    medication.schedules = [
        DoseSchedule(scheduled_time="08:00", source=ScheduleSource.FREQUENCY),
        DoseSchedule(scheduled_time="20:00", source=ScheduleSource.FREQUENCY),
    ]
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def make_event(db_session: Session, test_medication: Medication):
    """Factory for intake events of test_medication"""
    def _make(scheduled_time: datetime, status: IntakeStatus = IntakeStatus.PENDING, schedule_index: int = 0):
        event = IntakeEvent(
            patient_id=test_medication.patient_id,
            medication_id=test_medication.id,
            schedule_id=test_medication.schedules[schedule_index].id,
            scheduled_time=scheduled_time,
            status=status,
            side_effects=[]
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event
    return _make


@pytest.fixture
def bp_threshold(db_session: Session, test_patient: Patient) -> VitalThreshold:
    """Critical systolic range 90-140"""
    threshold = VitalThreshold(
        patient_id=test_patient.id,
        parameter=VitalParameter.SYSTOLIC_BP,
        min_value=90,
        max_value=140,
        is_critical=True
    )
    db_session.add(threshold)
    db_session.commit()
    db_session.refresh(threshold)
    return threshold


# ==================== ACTOR FIXTURES ====================

@pytest.fixture
def patient_actor(test_patient: Patient) -> Actor:
    return Actor(id=test_patient.user_id, role=ActorRole.PATIENT)


@pytest.fixture
def doctor_actor(test_doctor: Doctor) -> Actor:
    return Actor(id=test_doctor.user_id, role=ActorRole.DOCTOR)


def auth_headers(user_id: int, role: ActorRole) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def patient_headers(test_patient: Patient) -> Dict[str, str]:
    return auth_headers(test_patient.user_id, ActorRole.PATIENT)


@pytest.fixture
def other_patient_headers(other_patient: Patient) -> Dict[str, str]:
    return auth_headers(other_patient.user_id, ActorRole.PATIENT)


@pytest.fixture
def doctor_headers(test_doctor: Doctor) -> Dict[str, str]:
    return auth_headers(test_doctor.user_id, ActorRole.DOCTOR)


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
