"""
Adherence Schemas
Pydantic models for intake ledger API requests and responses
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from models import IntakeStatus
from api.schemas.common import Pagination


# ==================== REQUEST SCHEMAS ====================

class IntakeRecord(BaseModel):
    """Outcome of a scheduled dose; status is checked by the ledger"""
    status: str
    taken_at: datetime
    dosage_taken: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    side_effects: Optional[List[str]] = None


class IntakeLog(IntakeRecord):
    """Direct log against a medication"""
    medication_id: int


class IntakeUpdate(BaseModel):
    status: Optional[str] = None
    taken_at: Optional[datetime] = None
    dosage_taken: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    side_effects: Optional[List[str]] = None


# ==================== RESPONSE SCHEMAS ====================

class IntakeResponse(BaseModel):
    id: int
    patient_id: int
    medication_id: int
    schedule_id: Optional[int] = None
    scheduled_time: datetime
    status: IntakeStatus
    taken_at: Optional[datetime] = None
    dosage_taken: Optional[str] = None
    notes: Optional[str] = None
    side_effects: Optional[List[str]] = None
    recorded_by: Optional[int] = None
    recorded_by_role: Optional[str] = None
    recorded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IntakeList(BaseModel):
    logs: List[IntakeResponse]
    pagination: Pagination


class StatusCounts(BaseModel):
    pending: int = 0
    taken: int = 0
    missed: int = 0
    skipped: int = 0
    partial: int = 0


class MedicationAdherence(BaseModel):
    medication_id: int
    medication_name: str
    total_doses: int
    taken_doses: int
    adherence_rate: float
    by_status: StatusCounts


class OverallAdherence(BaseModel):
    total_doses: int
    taken_doses: int
    adherence_rate: float
    by_status: StatusCounts


class AdherenceSummary(BaseModel):
    patient_id: int
    days_analyzed: int
    medications: List[MedicationAdherence]
    overall: OverallAdherence
