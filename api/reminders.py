"""
Reminders API Router
The merged medication-reminder / vital-alert feed
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_actor, patient_access, services
from api.schemas.reminder import (
    ReminderFeed,
    SnoozeRequest,
    SnoozeResponse,
    ReadResponse,
    ReadAllResponse,
)
from config import scheduling_config
from services.access_service import Actor


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/patient/{patient_id}", response_model=ReminderFeed)
async def get_feed(
    patient_id: int = Depends(patient_access),
    hours_ahead: int = Query(scheduling_config.REMINDER_LOOKAHEAD_HOURS, ge=1, le=168),
    alert_days: int = Query(scheduling_config.ALERT_LOOKBACK_DAYS, ge=1, le=90),
    include_read: bool = True,
    db: Session = Depends(get_db)
):
    """
    Pending reminders and vital alerts, most urgent first
    """
    return await services.get_reminder_service().get_feed(
        patient_id,
        hours_ahead=hours_ahead,
        alert_days=alert_days,
        include_read=include_read,
        db=db
    )


@router.patch("/patient/{patient_id}/items/{key}/read", response_model=ReadResponse)
async def mark_read(
    key: str,
    patient_id: int = Depends(patient_access),
    db: Session = Depends(get_db)
):
    return await services.get_reminder_service().mark_read(patient_id, key, db=db)


@router.patch("/patient/{patient_id}/read-all", response_model=ReadAllResponse)
async def mark_all_read(
    patient_id: int = Depends(patient_access),
    db: Session = Depends(get_db)
):
    marked = await services.get_reminder_service().mark_all_read(patient_id, db=db)
    return ReadAllResponse(marked=marked)


@router.post("/events/{event_id}/snooze", response_model=SnoozeResponse)
async def snooze_reminder(
    event_id: int,
    snooze: Optional[SnoozeRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Snooze a pending reminder (default 15 minutes); the dose itself is unchanged
    """
    event = await services.get_adherence_service().get_intake(event_id, db=db)
    services.get_access_service().ensure_owned(actor, event, "Intake event", db)

    return await services.get_reminder_service().snooze(
        event_id, minutes=snooze.minutes if snooze else None, db=db
    )
