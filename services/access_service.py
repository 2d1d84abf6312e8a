"""
Access Service
Authorization predicate for patient-scoped data and care-team management
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from database import get_db_context
from errors import AccessDeniedError, NotFoundError
import models
from models import ActorRole


logger = logging.getLogger(__name__)

PATIENT_DENIED_MESSAGE = "Patient not found or access denied"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller resolved from the bearer credential"""
    id: int
    role: ActorRole


class AccessService:
    """
    Service deciding whether an actor may see a patient's data
    """

    def can_access(self, actor: Actor, patient_id: int, db: Session) -> bool:
        """
        A patient may access only their own record; a doctor only while
        an active care relationship exists. Every other role is denied.
        """
        if actor.role == ActorRole.PATIENT:
            own = db.query(models.Patient.id).filter(
                and_(
                    models.Patient.id == patient_id,
                    models.Patient.user_id == actor.id
                )
            ).first()
            return own is not None

        if actor.role == ActorRole.DOCTOR:
            link = db.query(models.DoctorPatient.id).join(
                models.Doctor, models.Doctor.id == models.DoctorPatient.doctor_id
            ).filter(
                and_(
                    models.Doctor.user_id == actor.id,
                    models.DoctorPatient.patient_id == patient_id,
                    models.DoctorPatient.is_active == True
                )
            ).first()
            return link is not None

        return False

    def ensure_access(self, actor: Actor, patient_id: int, db: Session) -> None:
        """Raise AccessDeniedError unless can_access; never reveals existence"""
        if not self.can_access(actor, patient_id, db):
            logger.info(f"Access denied for {actor.role.value} {actor.id} to patient {patient_id}")
            raise AccessDeniedError(PATIENT_DENIED_MESSAGE)

    def ensure_owned(self, actor: Actor, record, label: str, db: Session):
        """
        Resolve a record fetched by id. Missing and inaccessible records
        produce the same NotFoundError.
        """
        if record is None or not self.can_access(actor, record.patient_id, db):
            raise NotFoundError(f"{label} not found or access denied")
        return record

    def doctor_id_for(self, actor: Actor, db: Session) -> Optional[int]:
        """Doctor profile ID of a doctor actor, None for everyone else"""
        if actor.role != ActorRole.DOCTOR:
            return None
        row = db.query(models.Doctor.id).filter(models.Doctor.user_id == actor.id).first()
        return row[0] if row else None

    def _doctor_for(self, actor: Actor, session: Session) -> models.Doctor:
        if actor.role != ActorRole.DOCTOR:
            raise AccessDeniedError("Only doctors manage care relationships")
        doctor = session.query(models.Doctor).filter(
            models.Doctor.user_id == actor.id
        ).first()
        if not doctor or not doctor.is_active:
            raise AccessDeniedError("Doctor profile not found or inactive")
        return doctor

    async def assign_patient(
        self,
        actor: Actor,
        patient_id: int,
        relationship_type: str = "primary",
        db: Optional[Session] = None
    ) -> models.DoctorPatient:
        """Create or reactivate the doctor's relationship with a patient"""
        def _assign(session: Session) -> models.DoctorPatient:
            doctor = self._doctor_for(actor, session)
            patient = session.query(models.Patient).filter(
                models.Patient.id == patient_id
            ).first()
            if not patient:
                raise NotFoundError(f"Patient {patient_id} not found")

            link = session.query(models.DoctorPatient).filter(
                and_(
                    models.DoctorPatient.doctor_id == doctor.id,
                    models.DoctorPatient.patient_id == patient_id
                )
            ).first()
            if link:
                link.is_active = True
                link.relationship_type = relationship_type
                link.updated_at = datetime.utcnow()
            else:
                link = models.DoctorPatient(
                    doctor_id=doctor.id,
                    patient_id=patient_id,
                    relationship_type=relationship_type,
                    is_active=True
                )
                session.add(link)

            session.commit()
            session.refresh(link)
            logger.info(f"Doctor {doctor.id} assigned to patient {patient_id}")
            return link

        if db:
            return _assign(db)

        with get_db_context() as session:
            return _assign(session)

    async def unassign_patient(
        self,
        actor: Actor,
        patient_id: int,
        db: Optional[Session] = None
    ) -> models.DoctorPatient:
        """Soft-delete the relationship; access is revoked on the next check"""
        def _unassign(session: Session) -> models.DoctorPatient:
            doctor = self._doctor_for(actor, session)
            link = session.query(models.DoctorPatient).filter(
                and_(
                    models.DoctorPatient.doctor_id == doctor.id,
                    models.DoctorPatient.patient_id == patient_id,
                    models.DoctorPatient.is_active == True
                )
            ).first()
            if not link:
                raise NotFoundError("Care relationship not found")

            link.is_active = False
            link.updated_at = datetime.utcnow()
            session.commit()
            session.refresh(link)
            logger.info(f"Doctor {doctor.id} unassigned from patient {patient_id}")
            return link

        if db:
            return _unassign(db)

        with get_db_context() as session:
            return _unassign(session)

    async def list_patients(
        self,
        actor: Actor,
        offset: int = 0,
        limit: int = 20,
        db: Optional[Session] = None
    ) -> tuple[List[models.Patient], int]:
        """Active patients of the calling doctor"""
        def _list(session: Session) -> tuple[List[models.Patient], int]:
            doctor = self._doctor_for(actor, session)
            query = session.query(models.Patient).join(
                models.DoctorPatient, models.DoctorPatient.patient_id == models.Patient.id
            ).filter(
                and_(
                    models.DoctorPatient.doctor_id == doctor.id,
                    models.DoctorPatient.is_active == True
                )
            )
            total = query.count()
            patients = query.order_by(
                models.Patient.last_name, models.Patient.first_name
            ).offset(offset).limit(limit).all()
            return patients, total

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)


# Singleton instance
access_service = AccessService()
