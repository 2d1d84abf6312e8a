"""
Database Models
SQLAlchemy ORM models for CareLedger
"""

from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, ForeignKey, Text, Date, Enum, Index, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


# ==================== ENUMS ====================

class ActorRole(str, PyEnum):
    """Roles carried by the bearer credential"""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
    SYSTEM = "system"


class MedicationForm(str, PyEnum):
    """Dosage forms a medication can be prescribed in"""
    TABLET = "tablet"
    CAPSULE = "capsule"
    LIQUID = "liquid"
    INJECTION = "injection"
    CREAM = "cream"
    INHALER = "inhaler"


class IntakeStatus(str, PyEnum):
    """Lifecycle status of a dose-due event"""
    PENDING = "pending"
    TAKEN = "taken"
    MISSED = "missed"
    SKIPPED = "skipped"
    PARTIAL = "partial"

    @classmethod
    def terminal(cls) -> list["IntakeStatus"]:
        return [cls.TAKEN, cls.MISSED, cls.SKIPPED, cls.PARTIAL]


class ScheduleSource(str, PyEnum):
    """Where a dose schedule row came from"""
    EXPLICIT = "explicit"
    FREQUENCY = "frequency"


class VitalParameter(str, PyEnum):
    """Numeric parameters of a vital-signs reading"""
    SYSTOLIC_BP = "systolic_bp"
    DIASTOLIC_BP = "diastolic_bp"
    HEART_RATE = "heart_rate"
    RESPIRATORY_RATE = "respiratory_rate"
    TEMPERATURE = "temperature"
    OXYGEN_SATURATION = "oxygen_saturation"
    BLOOD_GLUCOSE = "blood_glucose"
    WEIGHT_KG = "weight_kg"
    PAIN_LEVEL = "pain_level"


# ==================== MODELS ====================

class Patient(Base):
    """Patient profile linked to an external identity"""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, index=True, nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    medications = relationship("Medication", back_populates="patient", cascade="all, delete-orphan")
    intake_events = relationship("IntakeEvent", back_populates="patient", cascade="all, delete-orphan")
    vital_readings = relationship("VitalReading", back_populates="patient", cascade="all, delete-orphan")
    vital_thresholds = relationship("VitalThreshold", back_populates="patient", cascade="all, delete-orphan")
    care_team = relationship("DoctorPatient", back_populates="patient", cascade="all, delete-orphan")


class Doctor(Base):
    """Doctor profile linked to an external identity"""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, index=True, nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    specialization = Column(String(100))

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    patients = relationship("DoctorPatient", back_populates="doctor", cascade="all, delete-orphan")


class DoctorPatient(Base):
    """Care relationship between a doctor and a patient (soft-deleted)"""
    __tablename__ = "doctor_patients"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    relationship_type = Column(String(50), default="primary")
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = relationship("Doctor", back_populates="patients")
    patient = relationship("Patient", back_populates="care_team")

    __table_args__ = (
        UniqueConstraint("doctor_id", "patient_id", name="uq_doctor_patient"),
        Index("ix_doctor_patients_active", "doctor_id", "patient_id", "is_active"),
    )


class Medication(Base):
    """Prescribed medication; discontinued by clearing is_active"""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    prescribed_by = Column(Integer, ForeignKey("doctors.id"))

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"
    form = Column(Enum(MedicationForm), nullable=False)
    frequency = Column(String(100), nullable=False)  # "twice daily", "every 6 hours"
    instructions = Column(Text, default="")

    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    is_active = Column(Boolean, default=True)
    discontinued_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    patient = relationship("Patient", back_populates="medications")
    prescriber = relationship("Doctor")
    schedules = relationship("DoseSchedule", back_populates="medication", cascade="all, delete-orphan")
    intake_events = relationship("IntakeEvent", back_populates="medication", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_medications_patient_active", "patient_id", "is_active"),
    )


class DoseSchedule(Base):
    """One daily clock-time plus a weekday mask (bit 0 = Monday)"""
    __tablename__ = "dose_schedules"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False)

    scheduled_time = Column(String(5), nullable=False)  # "HH:MM"
    day_mask = Column(Integer, nullable=False, default=0b1111111)
    source = Column(Enum(ScheduleSource), default=ScheduleSource.EXPLICIT)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    medication = relationship("Medication", back_populates="schedules")

    __table_args__ = (
        Index("ix_dose_schedules_medication_active", "medication_id", "is_active"),
    )


class IntakeEvent(Base):
    """A single expected (or directly logged) dose and its recorded outcome"""
    __tablename__ = "intake_events"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("dose_schedules.id"))

    scheduled_time = Column(DateTime, nullable=False)
    status = Column(Enum(IntakeStatus), default=IntakeStatus.PENDING, nullable=False)

    # Recorded outcome
    taken_at = Column(DateTime)
    dosage_taken = Column(String(100))
    notes = Column(Text, default="")
    side_effects = Column(JSON, default=list)
    recorded_by = Column(Integer)
    recorded_by_role = Column(String(20))
    recorded_at = Column(DateTime)  # write timestamp, orders concurrent writes

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    patient = relationship("Patient", back_populates="intake_events")
    medication = relationship("Medication", back_populates="intake_events")
    schedule = relationship("DoseSchedule")

    __table_args__ = (
        UniqueConstraint("medication_id", "schedule_id", "scheduled_time", name="uq_intake_slot"),
        Index("ix_intake_patient_scheduled", "patient_id", "scheduled_time"),
        Index("ix_intake_status_scheduled", "status", "scheduled_time"),
    )


class VitalReading(Base):
    """Immutable vital-signs reading"""
    __tablename__ = "vital_readings"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    recorded_by = Column(Integer, nullable=False)
    recorded_by_role = Column(String(20), nullable=False)

    systolic_bp = Column(Float)
    diastolic_bp = Column(Float)
    heart_rate = Column(Float)
    respiratory_rate = Column(Float)
    temperature = Column(Float)
    oxygen_saturation = Column(Float)
    blood_glucose = Column(Float)
    weight_kg = Column(Float)
    pain_level = Column(Float)

    notes = Column(Text)
    recorded_at = Column(DateTime, default=datetime.now, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    patient = relationship("Patient", back_populates="vital_readings")

    __table_args__ = (
        Index("ix_vitals_patient_recorded", "patient_id", "recorded_at"),
    )


class VitalThreshold(Base):
    """Per-patient acceptable range for one vital parameter"""
    __tablename__ = "vital_thresholds"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    set_by = Column(Integer)

    parameter = Column(Enum(VitalParameter), nullable=False)
    min_value = Column(Float)
    max_value = Column(Float)
    is_critical = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("Patient", back_populates="vital_thresholds")

    __table_args__ = (
        UniqueConstraint("patient_id", "parameter", name="uq_threshold_parameter"),
    )


class FeedItemState(Base):
    """Read/snooze state of a reminder-feed item; never touches the ledger"""
    __tablename__ = "feed_item_states"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    item_key = Column(String(100), nullable=False)

    read_at = Column(DateTime)
    snoozed_until = Column(DateTime)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("patient_id", "item_key", name="uq_feed_item"),
    )
