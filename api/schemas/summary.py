"""
Summary Schemas
Pydantic models for the patient health summary
"""

from typing import Optional, Dict
from datetime import datetime
from pydantic import BaseModel

from api.schemas.adherence import OverallAdherence


class VitalStats(BaseModel):
    reading_count: int
    last_recorded: Optional[datetime] = None
    averages: Dict[str, Optional[float]]


class HealthSummary(BaseModel):
    patient_id: int
    days_analyzed: int
    period_start: datetime
    period_end: datetime
    vitals: VitalStats
    adherence: OverallAdherence
