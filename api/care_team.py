"""
Care Team API Router
Doctor-patient relationships that grant doctors access
"""

from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.deps import get_db, require_doctor, pagination_params, pagination_meta, services
from api.schemas.care_team import AssignmentRequest, AssignmentResponse, PatientSummary, PatientList
from services.access_service import Actor


router = APIRouter(prefix="/care-team", tags=["care-team"])


@router.post("/patients/{patient_id}", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_patient(
    patient_id: int,
    assignment: Optional[AssignmentRequest] = None,
    actor: Actor = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    return await services.get_access_service().assign_patient(
        actor,
        patient_id,
        relationship_type=assignment.relationship_type if assignment else "primary",
        db=db
    )


@router.delete("/patients/{patient_id}", response_model=AssignmentResponse)
async def unassign_patient(
    patient_id: int,
    actor: Actor = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    """
    End the relationship; the doctor loses access immediately
    """
    return await services.get_access_service().unassign_patient(actor, patient_id, db=db)


@router.get("/patients", response_model=PatientList)
async def list_patients(
    pagination: dict = Depends(pagination_params),
    actor: Actor = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    patients, total = await services.get_access_service().list_patients(
        actor, offset=pagination["offset"], limit=pagination["limit"], db=db
    )
    return PatientList(
        patients=[PatientSummary.model_validate(p) for p in patients],
        pagination=pagination_meta(pagination["page"], pagination["limit"], total)
    )
