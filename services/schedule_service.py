"""
Schedule Service
Persists dose schedules and generates dose-due intake events
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime, time, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError

from config import scheduling_config
from database import get_db_context
import models
from models import IntakeStatus, ScheduleSource
from tools.frequency_parser import parse_frequency
from tools.schedule_generator import (
    ScheduleSlot,
    DueDose,
    generate_dose_candidates,
    compute_due_doses,
    horizon_window,
)


logger = logging.getLogger(__name__)


def slots_for(medication: models.Medication) -> List[ScheduleSlot]:
    """Active schedules of a medication as generator slots"""
    return [
        ScheduleSlot.from_clock(s.scheduled_time, s.day_mask, s.id)
        for s in medication.schedules
        if s.is_active
    ]


class ScheduleService:
    """
    Service for dose schedules and intake-event generation
    """

    def __init__(self, horizon_days: int = scheduling_config.GENERATION_HORIZON_DAYS):
        self.horizon_days = horizon_days

    def build_schedules(
        self,
        medication: models.Medication,
        explicit: Optional[List[Dict[str, Any]]] = None
    ) -> List[models.DoseSchedule]:
        """
        Schedule rows for a new medication: the explicit ones when given,
        otherwise one every-day row per clock-time parsed from the frequency.
        """
        if explicit:
            rows = [
                models.DoseSchedule(
                    scheduled_time=s["scheduled_time"],
                    day_mask=s["day_mask"],
                    source=ScheduleSource.EXPLICIT,
                    is_active=True
                )
                for s in explicit
            ]
        else:
            parsed = parse_frequency(medication.frequency)
            rows = [
                models.DoseSchedule(
                    scheduled_time=clock,
                    source=ScheduleSource.FREQUENCY,
                    is_active=True
                )
                for clock in parsed.times
            ]
            logger.debug(
                f"Derived {len(rows)} schedule(s) from frequency "
                f"'{medication.frequency}' ({parsed.kind.value})"
            )
        medication.schedules.extend(rows)
        return rows

    def _sync_generate(
        self,
        session: Session,
        medication: models.Medication,
        now: datetime,
        horizon_days: int
    ) -> List[models.IntakeEvent]:
        """Insert pending events for the horizon, skipping slots already present"""
        if not medication.is_active:
            return []

        slots = slots_for(medication)
        window_start, window_end = horizon_window(now, horizon_days)
        candidates = generate_dose_candidates(
            medication.id,
            medication.start_date,
            medication.end_date,
            slots,
            window_start,
            window_end
        )
        if not candidates:
            return []

        existing = {
            (row.schedule_id, row.scheduled_time)
            for row in session.query(
                models.IntakeEvent.schedule_id, models.IntakeEvent.scheduled_time
            ).filter(
                and_(
                    models.IntakeEvent.medication_id == medication.id,
                    models.IntakeEvent.scheduled_time >= window_start,
                    models.IntakeEvent.scheduled_time < window_end
                )
            ).all()
        }

        created = []
        for candidate in candidates:
            if (candidate.schedule_id, candidate.scheduled_time) in existing:
                continue
            event = models.IntakeEvent(
                patient_id=medication.patient_id,
                medication_id=medication.id,
                schedule_id=candidate.schedule_id,
                scheduled_time=candidate.scheduled_time,
                status=IntakeStatus.PENDING,
                side_effects=[]
            )
            session.add(event)
            created.append(event)

        try:
            session.commit()
        except IntegrityError:
            # A concurrent generator inserted the same slots first
            session.rollback()
            logger.warning(
                f"Concurrent generation detected for medication {medication.id}; "
                f"slots already present"
            )
            return []

        if created:
            logger.info(
                f"Generated {len(created)} intake event(s) for medication "
                f"{medication.id} through {window_end.date().isoformat()}"
            )
        return created

    async def generate_intake_events(
        self,
        medication_id: int,
        now: Optional[datetime] = None,
        horizon_days: Optional[int] = None,
        db: Optional[Session] = None
    ) -> List[models.IntakeEvent]:
        """
        Generate pending intake events for a medication's horizon.
        Safe to re-run: already generated (schedule, time) pairs are skipped.
        """
        def _generate(session: Session) -> List[models.IntakeEvent]:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                return []
            return self._sync_generate(
                session, medication, now or datetime.now(), horizon_days or self.horizon_days
            )

        if db:
            return _generate(db)

        with get_db_context() as session:
            return _generate(session)

    def sync_generate_all(
        self,
        session: Session,
        now: Optional[datetime] = None,
        horizon_days: Optional[int] = None
    ) -> int:
        """Regenerate the horizon for every active medication (daily scan)"""
        now = now or datetime.now()
        medications = session.query(models.Medication).filter(
            and_(
                models.Medication.is_active == True,
                models.Medication.start_date <= now.date() + timedelta(days=horizon_days or self.horizon_days)
            )
        ).all()

        total = 0
        for medication in medications:
            if medication.end_date and medication.end_date < now.date():
                continue
            total += len(self._sync_generate(
                session, medication, now, horizon_days or self.horizon_days
            ))
        return total

    async def generate_all(
        self,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> int:
        if db:
            return self.sync_generate_all(db, now)

        with get_db_context() as session:
            return self.sync_generate_all(session, now)

    async def get_due_medications(
        self,
        patient_id: int,
        hours_ahead: int = 24,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[Dict[str, Any]]:
        """
        Doses due within `hours_ahead`, computed from schedules rather than
        ledger rows. Slots already recorded with a terminal status are dropped.
        """
        def _get(session: Session) -> List[Dict[str, Any]]:
            current = now or datetime.now()
            medications = session.query(models.Medication).filter(
                and_(
                    models.Medication.patient_id == patient_id,
                    models.Medication.is_active == True
                )
            ).all()

            due: List[tuple] = []
            for medication in medications:
                for dose in compute_due_doses(
                    medication.id,
                    slots_for(medication),
                    medication.start_date,
                    medication.end_date,
                    current,
                    hours_ahead
                ):
                    due.append((medication, dose))

            if not due:
                return []

            window_start = datetime.combine(current.date(), time.min)
            recorded = {
                (row.medication_id, row.schedule_id, row.scheduled_time)
                for row in session.query(
                    models.IntakeEvent.medication_id,
                    models.IntakeEvent.schedule_id,
                    models.IntakeEvent.scheduled_time
                ).filter(
                    and_(
                        models.IntakeEvent.patient_id == patient_id,
                        models.IntakeEvent.scheduled_time >= window_start,
                        models.IntakeEvent.status.in_(IntakeStatus.terminal())
                    )
                ).all()
            }

            results = []
            for medication, dose in due:
                if (dose.medication_id, dose.schedule_id, dose.scheduled_time) in recorded:
                    continue
                results.append(self._due_entry(medication, dose))

            results.sort(key=lambda x: x["scheduled_time"])
            return results

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    @staticmethod
    def _due_entry(medication: models.Medication, dose: DueDose) -> Dict[str, Any]:
        return {
            "medication_id": medication.id,
            "schedule_id": dose.schedule_id,
            "name": medication.name,
            "dosage": medication.dosage,
            "form": getattr(medication.form, "value", medication.form),
            "instructions": medication.instructions or "",
            "scheduled_time": dose.scheduled_time,
            "is_overdue": dose.is_overdue,
            "minutes_until": dose.minutes_until,
        }


# Singleton instance
schedule_service = ScheduleService()
