"""
Patients API Router
Patient-level overviews
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, patient_access, services
from api.schemas.summary import HealthSummary


router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("/{patient_id}/summary", response_model=HealthSummary)
async def get_patient_summary(
    patient_id: int = Depends(patient_access),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db)
):
    """
    Vital averages and intake outcomes over the last `days`
    """
    return await services.get_summary_service().get_health_summary(patient_id, days=days, db=db)
