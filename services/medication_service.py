"""
Medication Service
Business logic for prescriptions and their lifecycle
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime, date, time
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError

from database import get_db_context
from errors import NotFoundError, ValidationError
import models
from models import IntakeStatus, MedicationForm
from services.schedule_service import ScheduleService, schedule_service as default_schedule_service
from tools.schedule_generator import mask_from_days, parse_clock_time


logger = logging.getLogger(__name__)


class MedicationService:
    """
    Service for medication management
    """

    def __init__(self, schedules: Optional[ScheduleService] = None):
        self.schedules = schedules or default_schedule_service

    @staticmethod
    def _normalize_schedules(schedules: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        normalized = []
        for index, entry in enumerate(schedules or []):
            clock = parse_clock_time(entry.get("scheduled_time"), field=f"schedules[{index}].scheduled_time")
            day_mask = mask_from_days(entry.get("days"))
            if day_mask == 0:
                raise ValidationError(
                    "A schedule must permit at least one weekday",
                    field=f"schedules[{index}].days"
                )
            normalized.append({"scheduled_time": clock.strftime("%H:%M"), "day_mask": day_mask})
        return normalized

    async def add_medication(
        self,
        patient_id: int,
        name: str,
        dosage: str,
        form: MedicationForm,
        frequency: str,
        start_date: date,
        end_date: Optional[date] = None,
        instructions: Optional[str] = None,
        prescribed_by: Optional[int] = None,
        schedules: Optional[List[Dict[str, Any]]] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> tuple[models.Medication, int]:
        """
        Prescribe a medication and generate its first horizon of intake events

        Args:
            patient_id: Patient ID
            name: Drug name
            dosage: Dosage string (e.g., "500mg")
            form: Dosage form
            frequency: Free-text frequency
            start_date: First day of treatment
            end_date: Optional last day of treatment (inclusive)
            instructions: Free-text instructions
            prescribed_by: Prescribing doctor's profile ID
            schedules: Optional explicit [{scheduled_time, days}] entries
            now: Reference time for generation
            db: Database session

        Returns:
            (medication, number of generated intake events)
        """
        if end_date is not None and end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        explicit = self._normalize_schedules(schedules)

        def _add(session: Session) -> tuple[models.Medication, int]:
            patient = session.query(models.Patient).filter(
                models.Patient.id == patient_id
            ).first()
            if not patient:
                raise NotFoundError(f"Patient {patient_id} not found")

            medication = models.Medication(
                patient_id=patient_id,
                prescribed_by=prescribed_by,
                name=name,
                dosage=dosage,
                form=form,
                frequency=frequency,
                instructions=instructions or "",
                start_date=start_date,
                end_date=end_date,
                is_active=True
            )
            session.add(medication)
            self.schedules.build_schedules(medication, explicit)
            session.commit()
            session.refresh(medication)

            logger.info(
                f"Added medication {medication.id} ({name}) for patient {patient_id} "
                f"with {len(medication.schedules)} schedule(s)"
            )

            # The medication is already committed; a failed generation is
            # picked up again by the daily scan.
            generated = 0
            try:
                generated = len(self.schedules._sync_generate(
                    session, medication, now or datetime.now(), self.schedules.horizon_days
                ))
            except SQLAlchemyError:
                session.rollback()
                logger.exception(f"Intake generation failed for medication {medication.id}")

            session.refresh(medication)
            return medication, generated

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.Medication]:
        """Get medication by ID, schedules loaded"""
        def _get(session: Session) -> Optional[models.Medication]:
            return session.query(models.Medication).options(
                selectinload(models.Medication.schedules)
            ).filter(models.Medication.id == medication_id).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_patient_medications(
        self,
        patient_id: int,
        active_only: bool = True,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """Get all medications for a patient"""
        def _get(session: Session) -> List[models.Medication]:
            query = session.query(models.Medication).options(
                selectinload(models.Medication.schedules)
            ).filter(models.Medication.patient_id == patient_id)

            if active_only:
                query = query.filter(models.Medication.is_active == True)

            return query.order_by(models.Medication.name).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def discontinue_medication(
        self,
        medication_id: int,
        reason: Optional[str] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Optional[models.Medication]:
        """
        Deactivate a medication (never hard-deleted). Its schedules are
        deactivated and pending events after the cutoff (now, or the end of
        a backdated end_date) are withdrawn.
        """
        def _discontinue(session: Session) -> Optional[models.Medication]:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                return None

            current = now or datetime.now()
            last_day = end_date or current.date()
            if last_day > current.date():
                raise ValidationError("Discontinuation cannot be dated in the future", field="end_date")
            if last_day < medication.start_date:
                last_day = medication.start_date

            medication.is_active = False
            medication.end_date = last_day
            medication.discontinued_reason = reason
            medication.updated_at = datetime.utcnow()
            for schedule in medication.schedules:
                schedule.is_active = False

            cutoff = min(current, datetime.combine(last_day, time.max))
            withdrawn = session.query(models.IntakeEvent).filter(
                and_(
                    models.IntakeEvent.medication_id == medication_id,
                    models.IntakeEvent.status == IntakeStatus.PENDING,
                    models.IntakeEvent.scheduled_time > cutoff
                )
            ).delete(synchronize_session=False)

            session.commit()
            session.refresh(medication)

            logger.info(
                f"Discontinued medication {medication_id}: {reason or 'no reason given'} "
                f"({withdrawn} pending event(s) withdrawn)"
            )
            return medication

        if db:
            return _discontinue(db)

        with get_db_context() as session:
            return _discontinue(session)


# Singleton instance
medication_service = MedicationService()
