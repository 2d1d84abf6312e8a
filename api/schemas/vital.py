"""
Vital Schemas
Pydantic models for vital-signs readings, thresholds and alerts
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, model_validator

from models import VitalParameter
from api.schemas.common import Pagination


VITAL_FIELDS = [p.value for p in VitalParameter]


# ==================== REQUEST SCHEMAS ====================

class VitalReadingCreate(BaseModel):
    """A reading; at least one parameter must be present"""
    patient_id: int
    systolic_bp: Optional[float] = Field(None, ge=0, le=300)
    diastolic_bp: Optional[float] = Field(None, ge=0, le=200)
    heart_rate: Optional[float] = Field(None, ge=0, le=300)
    respiratory_rate: Optional[float] = Field(None, ge=0, le=100)
    temperature: Optional[float] = Field(None, ge=30, le=45)
    oxygen_saturation: Optional[float] = Field(None, ge=0, le=100)
    blood_glucose: Optional[float] = Field(None, ge=0)
    weight_kg: Optional[float] = Field(None, ge=0)
    pain_level: Optional[float] = Field(None, ge=0, le=10)
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def require_one_parameter(self):
        if all(getattr(self, name) is None for name in VITAL_FIELDS):
            raise ValueError("At least one vital parameter is required")
        return self

    def parameter_values(self) -> dict:
        return {name: getattr(self, name) for name in VITAL_FIELDS}


class ThresholdUpsert(BaseModel):
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    is_critical: bool = False


# ==================== RESPONSE SCHEMAS ====================

class VitalReadingResponse(BaseModel):
    id: int
    patient_id: int
    recorded_by: int
    recorded_by_role: str
    systolic_bp: Optional[float] = None
    diastolic_bp: Optional[float] = None
    heart_rate: Optional[float] = None
    respiratory_rate: Optional[float] = None
    temperature: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    blood_glucose: Optional[float] = None
    weight_kg: Optional[float] = None
    pain_level: Optional[float] = None
    notes: Optional[str] = None
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VitalReadingList(BaseModel):
    readings: List[VitalReadingResponse]
    pagination: Pagination


class TrendPoint(BaseModel):
    date: str
    average: float
    min: float
    max: float
    count: int


class TrendResponse(BaseModel):
    parameter: VitalParameter
    days: int
    points: List[TrendPoint]


class ThresholdResponse(BaseModel):
    id: int
    patient_id: int
    parameter: VitalParameter
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    is_critical: bool
    set_by: Optional[int] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VitalAlertResponse(BaseModel):
    key: str
    reading_id: int
    patient_id: int
    parameter: str
    value: float
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    is_critical: bool
    recorded_at: datetime
    message: str
