"""
Adherence API Router
Endpoints for the intake ledger and adherence statistics
"""

from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_actor, patient_access, pagination_params, pagination_meta, services
from api.schemas.adherence import (
    IntakeRecord,
    IntakeLog,
    IntakeUpdate,
    IntakeResponse,
    IntakeList,
    AdherenceSummary,
)
from errors import NotFoundError
from services.access_service import Actor


router = APIRouter(prefix="/adherence", tags=["adherence"])


@router.post("/events/{event_id}/record", response_model=IntakeResponse)
async def record_intake(
    event_id: int,
    record: IntakeRecord,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Record the outcome of a scheduled dose

    - **status**: taken, missed, skipped or partial
    - **taken_at**: When the dose was taken
    """
    adherence_service = services.get_adherence_service()
    event = await adherence_service.get_intake(event_id, db=db)
    services.get_access_service().ensure_owned(actor, event, "Intake event", db)

    return await adherence_service.record_intake(
        event_id,
        status=record.status,
        taken_at=record.taken_at,
        recorded_by=actor.id,
        recorded_by_role=actor.role.value,
        dosage_taken=record.dosage_taken,
        notes=record.notes,
        side_effects=record.side_effects,
        db=db
    )


@router.post("/log", response_model=IntakeResponse, status_code=status.HTTP_201_CREATED)
async def log_intake(
    log: IntakeLog,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Log an intake against a medication; the nearest pending slot is claimed if any
    """
    medication = await services.get_medication_service().get_medication(log.medication_id, db=db)
    services.get_access_service().ensure_owned(actor, medication, "Medication", db)

    return await services.get_adherence_service().log_intake(
        log.medication_id,
        status=log.status,
        taken_at=log.taken_at,
        recorded_by=actor.id,
        recorded_by_role=actor.role.value,
        dosage_taken=log.dosage_taken,
        notes=log.notes,
        side_effects=log.side_effects,
        db=db
    )


@router.get("/patient/{patient_id}/logs", response_model=IntakeList)
async def list_intake(
    patient_id: int = Depends(patient_access),
    medication_id: Optional[int] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    """
    Ledger rows, most recent first
    """
    rows, total = await services.get_adherence_service().list_intake(
        patient_id,
        medication_id=medication_id,
        start=start,
        end=end,
        status=status_filter,
        offset=pagination["offset"],
        limit=pagination["limit"],
        db=db
    )
    return IntakeList(
        logs=[IntakeResponse.model_validate(r) for r in rows],
        pagination=pagination_meta(pagination["page"], pagination["limit"], total)
    )


@router.patch("/logs/{log_id}", response_model=IntakeResponse)
async def update_intake(
    log_id: int,
    update: IntakeUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    event = await adherence_service.get_intake(log_id, db=db)
    services.get_access_service().ensure_owned(actor, event, "Intake log", db)

    updated = await adherence_service.update_intake(
        log_id,
        update.model_dump(exclude_unset=True),
        recorded_by=actor.id,
        recorded_by_role=actor.role.value,
        db=db
    )
    if updated is None:
        raise NotFoundError("Intake log not found or access denied")
    return updated


@router.delete("/logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_intake(
    log_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    event = await adherence_service.get_intake(log_id, db=db)
    services.get_access_service().ensure_owned(actor, event, "Intake log", db)

    await adherence_service.delete_intake(log_id, db=db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/patient/{patient_id}/summary", response_model=AdherenceSummary)
async def get_adherence_summary(
    patient_id: int = Depends(patient_access),
    medication_id: Optional[int] = None,
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db)
):
    """
    Adherence rate per medication and overall (taken / recorded-or-pending)
    """
    return await services.get_adherence_service().compute_adherence(
        patient_id, medication_id=medication_id, days=days, db=db
    )
