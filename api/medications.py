"""
Medications API Router
Endpoints for prescriptions, schedules and due doses
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_actor, patient_access, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationDiscontinue,
    MedicationResponse,
    MedicationCreated,
    MedicationList,
    DueMedication,
    DueMedicationList,
    GenerationResult,
)
from services.access_service import Actor


router = APIRouter(prefix="/medications", tags=["medications"])


@router.post("/", response_model=MedicationCreated, status_code=status.HTTP_201_CREATED)
async def create_medication(
    medication_data: MedicationCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Prescribe a medication and generate its upcoming intake events

    - **patient_id**: Patient ID
    - **frequency**: Free text ("twice daily", "every 8 hours")
    - **schedules**: Optional explicit clock-times; otherwise derived from frequency
    """
    access = services.get_access_service()
    access.ensure_access(actor, medication_data.patient_id, db)

    medication, generated = await services.get_medication_service().add_medication(
        patient_id=medication_data.patient_id,
        name=medication_data.name,
        dosage=medication_data.dosage,
        form=medication_data.form,
        frequency=medication_data.frequency,
        start_date=medication_data.start_date,
        end_date=medication_data.end_date,
        instructions=medication_data.instructions,
        prescribed_by=access.doctor_id_for(actor, db),
        schedules=[s.model_dump() for s in medication_data.schedules or []],
        db=db
    )

    response = MedicationResponse.model_validate(medication)
    return MedicationCreated(**response.model_dump(), generated_events=generated)


@router.get("/patient/{patient_id}", response_model=MedicationList)
async def get_patient_medications(
    patient_id: int = Depends(patient_access),
    active_only: bool = Query(True, description="Only return active medications"),
    db: Session = Depends(get_db)
):
    """
    Get all medications for a patient
    """
    medications = await services.get_medication_service().get_patient_medications(
        patient_id,
        active_only=active_only,
        db=db
    )

    return MedicationList(
        medications=[MedicationResponse.model_validate(m) for m in medications],
        total=len(medications),
        active_count=sum(1 for m in medications if m.is_active)
    )


@router.get("/patient/{patient_id}/due", response_model=DueMedicationList)
async def get_due_medications(
    patient_id: int = Depends(patient_access),
    hours_ahead: int = Query(24, ge=1, le=168),
    db: Session = Depends(get_db)
):
    """
    Doses due from midnight today through `hours_ahead` hours from now
    """
    doses = await services.get_schedule_service().get_due_medications(
        patient_id, hours_ahead=hours_ahead, db=db
    )
    return DueMedicationList(
        patient_id=patient_id,
        hours_ahead=hours_ahead,
        doses=[DueMedication(**d) for d in doses],
        total=len(doses)
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    medication = await services.get_medication_service().get_medication(medication_id, db=db)
    return services.get_access_service().ensure_owned(actor, medication, "Medication", db)


@router.post("/{medication_id}/discontinue", response_model=MedicationResponse)
async def discontinue_medication(
    medication_id: int,
    discontinue_data: MedicationDiscontinue,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Discontinue a medication; pending doses after the end are withdrawn
    """
    medication_service = services.get_medication_service()
    medication = await medication_service.get_medication(medication_id, db=db)
    services.get_access_service().ensure_owned(actor, medication, "Medication", db)

    return await medication_service.discontinue_medication(
        medication_id,
        reason=discontinue_data.reason,
        end_date=discontinue_data.end_date,
        db=db
    )


@router.post("/{medication_id}/generate", response_model=GenerationResult)
async def generate_intake_events(
    medication_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Re-run intake-event generation for the horizon; already generated slots are kept
    """
    medication = await services.get_medication_service().get_medication(medication_id, db=db)
    services.get_access_service().ensure_owned(actor, medication, "Medication", db)

    created = await services.get_schedule_service().generate_intake_events(medication_id, db=db)
    return GenerationResult(medication_id=medication_id, generated=len(created))
