"""
Medication Schemas
Pydantic models for medication-related API requests and responses
"""

from typing import Optional, List, Dict
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict, computed_field

from models import MedicationForm, ScheduleSource
from tools.schedule_generator import days_from_mask


# ==================== REQUEST SCHEMAS ====================

class ScheduleEntry(BaseModel):
    """Explicit daily clock-time; omitted weekdays default to enabled"""
    scheduled_time: str = Field(..., description="HH:MM, 24-hour")
    days: Optional[Dict[str, bool]] = None


class MedicationCreate(BaseModel):
    """Schema for prescribing a medication"""
    patient_id: int
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=100)
    form: MedicationForm
    frequency: str = Field(..., min_length=1, max_length=100)
    instructions: Optional[str] = None
    start_date: date = Field(default_factory=date.today)
    end_date: Optional[date] = None
    schedules: Optional[List[ScheduleEntry]] = None


class MedicationDiscontinue(BaseModel):
    """Schema for discontinuing a medication"""
    reason: Optional[str] = Field(None, max_length=500)
    end_date: Optional[date] = None


# ==================== RESPONSE SCHEMAS ====================

class ScheduleResponse(BaseModel):
    id: int
    scheduled_time: str
    day_mask: int
    source: ScheduleSource
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def days(self) -> Dict[str, bool]:
        return days_from_mask(self.day_mask)


class MedicationResponse(BaseModel):
    """Schema for medication response"""
    id: int
    patient_id: int
    prescribed_by: Optional[int] = None
    name: str
    dosage: str
    form: MedicationForm
    frequency: str
    instructions: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    is_active: bool
    discontinued_reason: Optional[str] = None
    schedules: List[ScheduleResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationCreated(MedicationResponse):
    generated_events: int


class MedicationList(BaseModel):
    """List of medications"""
    medications: List[MedicationResponse]
    total: int
    active_count: int


class DueMedication(BaseModel):
    """A dose due within the look-ahead window"""
    medication_id: int
    schedule_id: Optional[int] = None
    name: str
    dosage: str
    form: str
    instructions: str = ""
    scheduled_time: datetime
    is_overdue: bool
    minutes_until: int


class DueMedicationList(BaseModel):
    patient_id: int
    hours_ahead: int
    doses: List[DueMedication]
    total: int


class GenerationResult(BaseModel):
    medication_id: int
    generated: int
