"""
Adherence Service
Intake ledger: dose-event status transitions, listing and adherence statistics
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from datetime import datetime, timedelta
from collections import defaultdict
from sqlalchemy.orm import Session
from sqlalchemy import and_, func, desc

from config import scheduling_config
from database import get_db_context
from errors import NotFoundError, ValidationError
import models
from models import IntakeStatus, ActorRole
from tools.schedule_generator import to_local_naive


logger = logging.getLogger(__name__)


RECORDABLE_STATUSES = IntakeStatus.terminal()
UPDATABLE_FIELDS = {"status", "taken_at", "dosage_taken", "notes", "side_effects"}


def coerce_status(value) -> IntakeStatus:
    """Accept only terminal statuses; anything else is a validation failure"""
    try:
        status = IntakeStatus(getattr(value, "value", value))
    except ValueError:
        status = None
    if status not in RECORDABLE_STATUSES:
        allowed = ", ".join(s.value for s in RECORDABLE_STATUSES)
        raise ValidationError(f"status must be one of: {allowed}", field="status")
    return status


def adherence_ratio(taken: int, total: int) -> float:
    return round(taken / total, 4) if total else 0.0


class AdherenceService:
    """
    Service for the intake ledger and adherence analysis
    """

    def __init__(
        self,
        match_window_minutes: int = scheduling_config.INTAKE_MATCH_WINDOW_MINUTES,
        missed_grace_minutes: int = scheduling_config.MISSED_DOSE_GRACE_MINUTES
    ):
        self.match_window_minutes = match_window_minutes
        self.missed_grace_minutes = missed_grace_minutes

    # ==================== RECORDING ====================

    def _apply_record(
        self,
        event: models.IntakeEvent,
        status: IntakeStatus,
        taken_at: Optional[datetime],
        dosage_taken: Optional[str],
        notes: Optional[str],
        side_effects: Optional[List[str]],
        recorded_by: Optional[int],
        recorded_by_role: Optional[str],
        written_at: datetime
    ) -> bool:
        """
        Last write wins by write timestamp. Returns False when this write is
        older than the one already stored.
        """
        if event.recorded_at is not None and written_at < event.recorded_at:
            logger.info(
                f"Ignoring stale write to intake event {event.id} "
                f"({written_at.isoformat()} < {event.recorded_at.isoformat()})"
            )
            return False

        event.status = status
        event.taken_at = taken_at
        if dosage_taken is not None:
            event.dosage_taken = dosage_taken
        elif event.dosage_taken is None and status in (IntakeStatus.TAKEN, IntakeStatus.PARTIAL):
            event.dosage_taken = event.medication.dosage if event.medication else None
        if notes is not None:
            event.notes = notes
        if side_effects is not None:
            event.side_effects = [s.strip() for s in side_effects if s and s.strip()]
        event.recorded_by = recorded_by
        event.recorded_by_role = recorded_by_role
        event.recorded_at = written_at
        return True

    async def record_intake(
        self,
        event_id: int,
        status,
        taken_at: Optional[datetime],
        recorded_by: Optional[int] = None,
        recorded_by_role: Optional[str] = None,
        dosage_taken: Optional[str] = None,
        notes: Optional[str] = None,
        side_effects: Optional[List[str]] = None,
        written_at: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.IntakeEvent:
        """
        Record the outcome of a pre-generated dose slot

        Args:
            event_id: Intake event ID
            status: taken, missed, skipped or partial
            taken_at: When the dose was taken (as claimed by the caller)
            recorded_by: Recording user ID
            recorded_by_role: Recording user role
            dosage_taken: Actual dosage, defaults to the prescribed dosage
            notes: Free-text notes
            side_effects: Reported side effects
            written_at: Write timestamp ordering concurrent writes
            db: Database session

        Returns:
            Updated IntakeEvent
        """
        status = coerce_status(status)
        taken_at = to_local_naive(taken_at)

        def _record(session: Session) -> models.IntakeEvent:
            event = session.query(models.IntakeEvent).filter(
                models.IntakeEvent.id == event_id
            ).first()
            if not event:
                raise NotFoundError(f"Intake event {event_id} not found")

            applied = self._apply_record(
                event, status, taken_at, dosage_taken, notes, side_effects,
                recorded_by, recorded_by_role, written_at or datetime.now()
            )
            session.commit()
            session.refresh(event)

            if applied:
                logger.info(
                    f"Recorded intake event {event_id} for patient {event.patient_id}: "
                    f"{status.value}"
                )
            return event

        if db:
            return _record(db)

        with get_db_context() as session:
            return _record(session)

    async def log_intake(
        self,
        medication_id: int,
        status,
        taken_at: datetime,
        recorded_by: Optional[int] = None,
        recorded_by_role: Optional[str] = None,
        dosage_taken: Optional[str] = None,
        notes: Optional[str] = None,
        side_effects: Optional[List[str]] = None,
        written_at: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.IntakeEvent:
        """
        Log an intake directly against a medication. The nearest entry
        within the match window is claimed, pending ones first, so logging
        the same dose again (or after it was marked missed) rewrites that
        entry under last-write-wins. Otherwise a fresh entry (no schedule)
        is created at taken_at.
        """
        status = coerce_status(status)
        taken_at = to_local_naive(taken_at)

        def _log(session: Session) -> models.IntakeEvent:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                raise NotFoundError(f"Medication {medication_id} not found")

            window = timedelta(minutes=self.match_window_minutes)
            candidates = session.query(models.IntakeEvent).filter(
                and_(
                    models.IntakeEvent.medication_id == medication_id,
                    models.IntakeEvent.scheduled_time >= taken_at - window,
                    models.IntakeEvent.scheduled_time <= taken_at + window
                )
            ).all()

            if candidates:
                event = min(
                    candidates,
                    key=lambda e: (
                        e.status != IntakeStatus.PENDING,
                        abs((e.scheduled_time - taken_at).total_seconds())
                    )
                )
            else:
                event = models.IntakeEvent(
                    patient_id=medication.patient_id,
                    medication_id=medication_id,
                    schedule_id=None,
                    scheduled_time=taken_at,
                    status=IntakeStatus.PENDING,
                    side_effects=[]
                )
                event.medication = medication
                session.add(event)

            self._apply_record(
                event, status, taken_at, dosage_taken, notes, side_effects,
                recorded_by, recorded_by_role, written_at or datetime.now()
            )
            session.commit()
            session.refresh(event)

            logger.info(
                f"Logged intake for medication {medication_id} "
                f"({'slot ' + str(event.schedule_id) if event.schedule_id else 'unscheduled'}): "
                f"{status.value}"
            )
            return event

        if db:
            return _log(db)

        with get_db_context() as session:
            return _log(session)

    # ==================== LEDGER ACCESS ====================

    async def get_intake(
        self,
        log_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.IntakeEvent]:
        def _get(session: Session) -> Optional[models.IntakeEvent]:
            return session.query(models.IntakeEvent).filter(
                models.IntakeEvent.id == log_id
            ).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def list_intake(
        self,
        patient_id: int,
        medication_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status=None,
        offset: int = 0,
        limit: int = 20,
        db: Optional[Session] = None
    ) -> Tuple[List[models.IntakeEvent], int]:
        """
        Paginated ledger rows, most recent first (taken_at, falling back to
        scheduled_time)
        """
        start, end = to_local_naive(start), to_local_naive(end)
        status_filter = None
        if status is not None:
            try:
                status_filter = IntakeStatus(getattr(status, "value", status))
            except ValueError:
                raise ValidationError(f"Unknown status '{status}'", field="status")

        def _list(session: Session) -> Tuple[List[models.IntakeEvent], int]:
            effective_time = func.coalesce(
                models.IntakeEvent.taken_at, models.IntakeEvent.scheduled_time
            )
            query = session.query(models.IntakeEvent).filter(
                models.IntakeEvent.patient_id == patient_id
            )
            if medication_id is not None:
                query = query.filter(models.IntakeEvent.medication_id == medication_id)
            if status_filter is not None:
                query = query.filter(models.IntakeEvent.status == status_filter)
            if start is not None:
                query = query.filter(effective_time >= start)
            if end is not None:
                query = query.filter(effective_time <= end)

            total = query.count()
            rows = query.order_by(
                desc(effective_time), desc(models.IntakeEvent.id)
            ).offset(offset).limit(limit).all()
            return rows, total

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def update_intake(
        self,
        log_id: int,
        updates: Dict[str, Any],
        recorded_by: Optional[int] = None,
        recorded_by_role: Optional[str] = None,
        written_at: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Optional[models.IntakeEvent]:
        """Partially update a ledger entry; status can never return to pending"""
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0]
            )
        if "status" in updates:
            updates = dict(updates, status=coerce_status(updates["status"]))
        if updates.get("taken_at") is not None:
            updates = dict(updates, taken_at=to_local_naive(updates["taken_at"]))

        def _update(session: Session) -> Optional[models.IntakeEvent]:
            event = session.query(models.IntakeEvent).filter(
                models.IntakeEvent.id == log_id
            ).first()
            if not event:
                return None

            write_time = written_at or datetime.now()
            if event.recorded_at is not None and write_time < event.recorded_at:
                logger.info(f"Ignoring stale update to intake event {log_id}")
                return event

            for field, value in updates.items():
                if field == "side_effects" and value is not None:
                    value = [s.strip() for s in value if s and s.strip()]
                setattr(event, field, value)
            event.recorded_by = recorded_by
            event.recorded_by_role = recorded_by_role
            event.recorded_at = write_time

            session.commit()
            session.refresh(event)
            logger.info(f"Updated intake event {log_id}: {', '.join(sorted(updates))}")
            return event

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_intake(
        self,
        log_id: int,
        db: Optional[Session] = None
    ) -> bool:
        def _delete(session: Session) -> bool:
            event = session.query(models.IntakeEvent).filter(
                models.IntakeEvent.id == log_id
            ).first()
            if not event:
                return False
            session.delete(event)
            session.commit()
            logger.info(f"Deleted intake event {log_id}")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    # ==================== ADHERENCE ====================

    async def compute_adherence(
        self,
        patient_id: int,
        medication_id: Optional[int] = None,
        days: int = 30,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Adherence per medication over events scheduled in [now - days, now]

        Returns:
            {"medications": [{medication_id, medication_name, total_doses,
             taken_doses, adherence_rate, by_status}], "overall": {...}}
        """
        def _calculate(session: Session) -> Dict[str, Any]:
            return self.sync_adherence(session, patient_id, medication_id, days, now or datetime.now())

        if db:
            return _calculate(db)

        with get_db_context() as session:
            return _calculate(session)

    def sync_adherence(
        self,
        session: Session,
        patient_id: int,
        medication_id: Optional[int],
        days: int,
        current: datetime
    ) -> Dict[str, Any]:
        window_start = current - timedelta(days=days)

        query = session.query(
            models.IntakeEvent.medication_id,
            models.IntakeEvent.status,
            func.count(models.IntakeEvent.id)
        ).filter(
            and_(
                models.IntakeEvent.patient_id == patient_id,
                models.IntakeEvent.scheduled_time >= window_start,
                models.IntakeEvent.scheduled_time <= current
            )
        )
        if medication_id is not None:
            query = query.filter(models.IntakeEvent.medication_id == medication_id)

        counts: Dict[int, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for med_id, status, count in query.group_by(
            models.IntakeEvent.medication_id, models.IntakeEvent.status
        ).all():
            counts[med_id][getattr(status, "value", status)] += count

        med_query = session.query(models.Medication).filter(
            models.Medication.patient_id == patient_id
        )
        if medication_id is not None:
            med_query = med_query.filter(models.Medication.id == medication_id)

        results = []
        overall_total = overall_taken = 0
        overall_by_status = {s.value: 0 for s in IntakeStatus}
        for med in med_query.order_by(models.Medication.name).all():
            by_status = {s.value: counts[med.id].get(s.value, 0) for s in IntakeStatus}
            total = sum(by_status.values())
            taken = by_status[IntakeStatus.TAKEN.value]
            overall_total += total
            overall_taken += taken
            for key, count in by_status.items():
                overall_by_status[key] += count
            results.append({
                "medication_id": med.id,
                "medication_name": med.name,
                "total_doses": total,
                "taken_doses": taken,
                "adherence_rate": adherence_ratio(taken, total),
                "by_status": by_status,
            })

        return {
            "patient_id": patient_id,
            "days_analyzed": days,
            "medications": results,
            "overall": {
                "total_doses": overall_total,
                "taken_doses": overall_taken,
                "adherence_rate": adherence_ratio(overall_taken, overall_total),
                "by_status": overall_by_status,
            },
        }

    # ==================== SCAN HELPERS ====================

    def sync_mark_overdue_missed(self, session: Session, now: datetime) -> int:
        """Pending events past the grace period become missed"""
        cutoff = now - timedelta(minutes=self.missed_grace_minutes)
        overdue = session.query(models.IntakeEvent).filter(
            and_(
                models.IntakeEvent.status == IntakeStatus.PENDING,
                models.IntakeEvent.scheduled_time < cutoff
            )
        ).all()

        written_at = datetime.now()
        for event in overdue:
            self._apply_record(
                event, IntakeStatus.MISSED, None, None, None, None,
                None, ActorRole.SYSTEM.value, written_at
            )
        if overdue:
            session.commit()
            logger.info(f"Marked {len(overdue)} overdue intake event(s) as missed")
        return len(overdue)

    def sync_pending_due(
        self,
        session: Session,
        now: datetime,
        lookahead_minutes: int,
        patient_id: Optional[int] = None,
        include_overdue_since: Optional[datetime] = None
    ) -> List[models.IntakeEvent]:
        """Pending events of active medications due before now + lookahead"""
        lower = include_overdue_since or now
        query = session.query(models.IntakeEvent).join(
            models.Medication, models.Medication.id == models.IntakeEvent.medication_id
        ).filter(
            and_(
                models.IntakeEvent.status == IntakeStatus.PENDING,
                models.IntakeEvent.scheduled_time >= lower,
                models.IntakeEvent.scheduled_time <= now + timedelta(minutes=lookahead_minutes),
                models.Medication.is_active == True
            )
        )
        if patient_id is not None:
            query = query.filter(models.IntakeEvent.patient_id == patient_id)
        return query.order_by(models.IntakeEvent.scheduled_time).all()


# Singleton instance
adherence_service = AdherenceService()
