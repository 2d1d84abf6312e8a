"""
Reminder Service
Builds the per-patient reminder feed and persists its read/snooze state
"""

import logging
import re
from typing import Dict, List, Optional, Any
from datetime import datetime, time, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError

from config import scheduling_config
from database import get_db_context
from errors import NotFoundError, ValidationError, ConflictError
import models
from models import IntakeStatus
from actions.reminder_engine import ReminderEngine, FeedItem, reminder_engine, reminder_key, alert_key
from services.adherence_service import AdherenceService, adherence_service
from services.vital_service import VitalService, vital_service


logger = logging.getLogger(__name__)


_ITEM_KEY = re.compile(r"^(intake:\d+|vital:\d+_[a-z_]+)$")


class ReminderService:
    """
    Service for the merged medication-reminder / vital-alert feed
    """

    def __init__(
        self,
        engine: Optional[ReminderEngine] = None,
        ledger: Optional[AdherenceService] = None,
        vitals: Optional[VitalService] = None
    ):
        self.engine = engine or reminder_engine
        self.ledger = ledger or adherence_service
        self.vitals = vitals or vital_service

    @staticmethod
    def _states(session: Session, patient_id: int) -> Dict[str, models.FeedItemState]:
        return {
            state.item_key: state
            for state in session.query(models.FeedItemState).filter(
                models.FeedItemState.patient_id == patient_id
            ).all()
        }

    def sync_feed(
        self,
        session: Session,
        patient_id: int,
        now: datetime,
        hours_ahead: int = scheduling_config.REMINDER_LOOKAHEAD_HOURS,
        alert_days: int = scheduling_config.ALERT_LOOKBACK_DAYS,
        include_read: bool = True
    ) -> List[FeedItem]:
        states = self._states(session, patient_id)

        items: List[FeedItem] = []
        for event in self.ledger.sync_pending_due(
            session,
            now,
            hours_ahead * 60,
            patient_id=patient_id,
            include_overdue_since=datetime.combine(now.date(), time.min)
        ):
            state = states.get(reminder_key(event.id))
            items.append(self.engine.build_reminder(
                event,
                event.medication,
                now,
                snoozed_until=state.snoozed_until if state else None,
                read=bool(state and state.read_at)
            ))

        for alert in self.vitals.sync_alerts(session, now - timedelta(days=alert_days), patient_id):
            state = states.get(alert_key(alert))
            items.append(self.engine.build_alert(alert, read=bool(state and state.read_at)))

        if not include_read:
            items = [item for item in items if not item.read]
        return self.engine.rank(items)

    async def get_feed(
        self,
        patient_id: int,
        hours_ahead: int = scheduling_config.REMINDER_LOOKAHEAD_HOURS,
        alert_days: int = scheduling_config.ALERT_LOOKBACK_DAYS,
        include_read: bool = True,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Ranked feed of pending reminders (since midnight, through
        `hours_ahead`) and vital alerts (last `alert_days`)

        Returns:
            {"items": [...], "unread_count": int, "total": int}
        """
        def _get(session: Session) -> Dict[str, Any]:
            items = self.sync_feed(
                session, patient_id, now or datetime.now(), hours_ahead, alert_days, include_read
            )
            return {
                "items": [item.to_dict() for item in items],
                "unread_count": sum(1 for item in items if not item.read),
                "total": len(items),
            }

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    @staticmethod
    def _state_for(session: Session, patient_id: int, key: str) -> models.FeedItemState:
        state = session.query(models.FeedItemState).filter(
            and_(
                models.FeedItemState.patient_id == patient_id,
                models.FeedItemState.item_key == key
            )
        ).first()
        if state is None:
            state = models.FeedItemState(patient_id=patient_id, item_key=key)
            session.add(state)
        return state

    @staticmethod
    def _commit(session: Session, key: str) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ConflictError(f"Feed item {key} was updated concurrently", field="key")

    async def mark_read(
        self,
        patient_id: int,
        key: str,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Mark one feed item read; presentation state only"""
        if not _ITEM_KEY.match(key or ""):
            raise ValidationError(f"Malformed feed item key '{key}'", field="key")

        def _mark(session: Session) -> Dict[str, Any]:
            state = self._state_for(session, patient_id, key)
            state.read_at = now or datetime.now()
            self._commit(session, key)
            return {"key": key, "read": True, "read_at": state.read_at.isoformat()}

        if db:
            return _mark(db)

        with get_db_context() as session:
            return _mark(session)

    async def mark_all_read(
        self,
        patient_id: int,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> int:
        """Mark every item currently in the feed read; returns how many changed"""
        def _mark_all(session: Session) -> int:
            current = now or datetime.now()
            unread = [
                item for item in self.sync_feed(session, patient_id, current)
                if not item.read
            ]
            for item in unread:
                self._state_for(session, patient_id, item.key).read_at = current
            self._commit(session, "*")
            logger.info(f"Marked {len(unread)} feed item(s) read for patient {patient_id}")
            return len(unread)

        if db:
            return _mark_all(db)

        with get_db_context() as session:
            return _mark_all(session)

    async def snooze(
        self,
        event_id: int,
        minutes: Optional[int] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Push a pending reminder back. The intake event itself keeps its
        scheduled time and status.
        """
        if minutes is not None and minutes <= 0:
            raise ValidationError("minutes must be positive", field="minutes")

        def _snooze(session: Session) -> Dict[str, Any]:
            event = session.query(models.IntakeEvent).filter(
                models.IntakeEvent.id == event_id
            ).first()
            if not event:
                raise NotFoundError(f"Intake event {event_id} not found")
            if event.status != IntakeStatus.PENDING:
                raise ValidationError("Only pending reminders can be snoozed", field="event_id")

            key = reminder_key(event.id)
            state = self._state_for(session, event.patient_id, key)
            state.snoozed_until = self.engine.snooze_until(
                event.scheduled_time, now or datetime.now(), minutes
            )
            self._commit(session, key)
            logger.info(f"Snoozed {key} until {state.snoozed_until.isoformat()}")
            return {"key": key, "event_id": event.id, "snoozed_until": state.snoozed_until.isoformat()}

        if db:
            return _snooze(db)

        with get_db_context() as session:
            return _snooze(session)


# Singleton instance
reminder_service = ReminderService()
