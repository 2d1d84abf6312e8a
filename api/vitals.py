"""
Vitals API Router
Endpoints for vital-signs readings, thresholds and alerts
"""

from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session

from api.deps import (
    get_db,
    get_current_actor,
    require_doctor,
    patient_access,
    pagination_params,
    pagination_meta,
    services,
)
from api.schemas.vital import (
    VitalReadingCreate,
    VitalReadingResponse,
    VitalReadingList,
    TrendResponse,
    ThresholdUpsert,
    ThresholdResponse,
    VitalAlertResponse,
)
from config import scheduling_config
from models import VitalParameter
from services.access_service import Actor


router = APIRouter(prefix="/vitals", tags=["vitals"])


@router.post("/", response_model=VitalReadingResponse, status_code=status.HTTP_201_CREATED)
async def record_reading(
    reading_data: VitalReadingCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Record a vital-signs reading. Threshold evaluation runs after the response.
    """
    services.get_access_service().ensure_access(actor, reading_data.patient_id, db)

    vital_service = services.get_vital_service()
    reading = await vital_service.record_reading(
        patient_id=reading_data.patient_id,
        values=reading_data.parameter_values(),
        recorded_by=actor.id,
        recorded_by_role=actor.role.value,
        notes=reading_data.notes,
        recorded_at=reading_data.recorded_at,
        db=db
    )

    background_tasks.add_task(vital_service.evaluate_reading_background, reading.id)
    return reading


@router.get("/patient/{patient_id}", response_model=VitalReadingList)
async def list_readings(
    patient_id: int = Depends(patient_access),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    rows, total = await services.get_vital_service().list_readings(
        patient_id,
        start=start,
        end=end,
        offset=pagination["offset"],
        limit=pagination["limit"],
        db=db
    )
    return VitalReadingList(
        readings=[VitalReadingResponse.model_validate(r) for r in rows],
        pagination=pagination_meta(pagination["page"], pagination["limit"], total)
    )


@router.get("/patient/{patient_id}/trends", response_model=TrendResponse)
async def get_trends(
    patient_id: int = Depends(patient_access),
    parameter: str = Query(..., description="Vital parameter, e.g. systolic_bp"),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db)
):
    """
    Daily average/min/max of one parameter
    """
    return await services.get_vital_service().get_trends(patient_id, parameter, days=days, db=db)


@router.put("/patient/{patient_id}/thresholds/{parameter}", response_model=ThresholdResponse)
async def upsert_threshold(
    parameter: VitalParameter,
    threshold_data: ThresholdUpsert,
    patient_id: int = Depends(patient_access),
    actor: Actor = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    """
    Set the acceptable range for one parameter (doctors only)
    """
    return await services.get_vital_service().upsert_threshold(
        patient_id,
        parameter,
        min_value=threshold_data.min_value,
        max_value=threshold_data.max_value,
        is_critical=threshold_data.is_critical,
        set_by=services.get_access_service().doctor_id_for(actor, db),
        db=db
    )


@router.get("/patient/{patient_id}/thresholds", response_model=List[ThresholdResponse])
async def list_thresholds(
    patient_id: int = Depends(patient_access),
    db: Session = Depends(get_db)
):
    return await services.get_vital_service().list_thresholds(patient_id, db=db)


@router.get("/patient/{patient_id}/alerts", response_model=List[VitalAlertResponse])
async def get_alerts(
    patient_id: int = Depends(patient_access),
    days: int = Query(scheduling_config.ALERT_LOOKBACK_DAYS, ge=1, le=90),
    db: Session = Depends(get_db)
):
    """
    Out-of-range values from recent readings, newest first
    """
    alerts = await services.get_vital_service().get_alerts(patient_id, days=days, db=db)
    return [VitalAlertResponse(**a.to_dict(), message=a.describe()) for a in alerts]
