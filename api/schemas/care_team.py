"""
Care Team Schemas
Pydantic models for doctor-patient relationships
"""

from typing import Optional, List
from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict

from api.schemas.common import Pagination


class AssignmentRequest(BaseModel):
    relationship_type: str = Field("primary", max_length=50)


class AssignmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    relationship_type: Optional[str] = None
    is_active: bool
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PatientSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PatientList(BaseModel):
    patients: List[PatientSummary]
    pagination: Pagination
