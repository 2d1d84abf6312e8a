"""
Scan Scheduler
Periodic background scans: dose-due reminders, missed doses and horizon generation
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple
from concurrent.futures import Future
from datetime import datetime, timedelta

from config import scheduling_config
from database import SessionLocal
import models
from actions.reminder_engine import FeedItem, ReminderEngine, reminder_engine, reminder_key, alert_key
from services.adherence_service import AdherenceService, adherence_service
from services.schedule_service import ScheduleService, schedule_service
from services.vital_service import VitalService, vital_service


logger = logging.getLogger(__name__)


def log_notification(item: FeedItem) -> None:
    """Default sink: in-app notification written to the log"""
    logger.info(f"[IN-APP] For patient {item.patient_id}: {item.title} - {item.message}")


class ScanScheduler:
    """
    Runs the minute and daily scans on the event loop.

    The blocking database work of each scan runs in a worker thread under a
    timeout. A scan kind never overlaps itself: a tick is skipped while the
    previous run (timed out or not) is still in its thread.
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        ledger: Optional[AdherenceService] = None,
        schedules: Optional[ScheduleService] = None,
        vitals: Optional[VitalService] = None,
        engine: Optional[ReminderEngine] = None,
        notifier: Callable[[FeedItem], None] = log_notification,
        timeout_seconds: float = scheduling_config.SCAN_TIMEOUT_SECONDS
    ):
        self.session_factory = session_factory
        self.ledger = ledger or adherence_service
        self.schedules = schedules or schedule_service
        self.vitals = vitals or vital_service
        self.engine = engine or reminder_engine
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds

        self._tasks: List[asyncio.Task] = []
        self._running: Dict[str, Future] = {}
        self._dispatched: Dict[str, datetime] = {}
        self._last_due_scan: Optional[datetime] = None

    # ==================== SCAN BODIES ====================

    def _pending_reminders(self, session, now: datetime) -> List[Tuple[str, datetime, FeedItem]]:
        """
        (dispatch key, expiry, item) for reminders to notify on this tick.

        An unsnoozed reminder is sent once before its due time. A snoozed one
        is held until `snoozed_until` and then sent once per snooze, even if
        the dose is already overdue.
        """
        events = self.ledger.sync_pending_due(
            session,
            now,
            scheduling_config.DUE_SCAN_LOOKAHEAD_MINUTES,
            include_overdue_since=now - timedelta(minutes=self.ledger.missed_grace_minutes)
        )
        keys = [reminder_key(event.id) for event in events]
        snoozes = {
            state.item_key: state.snoozed_until
            for state in session.query(models.FeedItemState).filter(
                models.FeedItemState.item_key.in_(keys)
            ).all()
        } if keys else {}

        pending = []
        for event, key in zip(events, keys):
            snoozed_until = snoozes.get(key)
            if snoozed_until is not None:
                if snoozed_until > now:
                    continue
                dispatch_key = f"{key}@{snoozed_until.isoformat()}"
                expiry = event.scheduled_time + timedelta(minutes=self.ledger.missed_grace_minutes)
            elif event.scheduled_time < now:
                continue
            else:
                dispatch_key = key
                expiry = event.scheduled_time
            item = self.engine.build_reminder(event, event.medication, now, snoozed_until=snoozed_until)
            pending.append((dispatch_key, expiry, item))
        return pending

    def _due_scan(self, now: datetime) -> List[FeedItem]:
        since = self._last_due_scan or now - timedelta(
            seconds=scheduling_config.DUE_SCAN_INTERVAL_SECONDS
        )
        # Entries older than `since` can no longer be produced by a scan
        self._dispatched = {
            key: expiry for key, expiry in self._dispatched.items() if expiry >= since
        }

        session = self.session_factory()
        try:
            self.ledger.sync_mark_overdue_missed(session, now)

            candidates = self._pending_reminders(session, now)
            candidates.extend(
                (alert_key(alert), alert.recorded_at, self.engine.build_alert(alert))
                for alert in self.vitals.sync_alerts(session, since)
            )
        finally:
            session.close()

        by_key = {item.key: (dispatch_key, expiry) for dispatch_key, expiry, item in candidates}
        delivered = []
        for item in self.engine.rank([item for _, _, item in candidates]):
            dispatch_key, expiry = by_key[item.key]
            if dispatch_key in self._dispatched:
                continue
            try:
                self.notifier(item)
            except Exception:
                logger.exception(f"Notification failed for {dispatch_key}")
                continue
            self._dispatched[dispatch_key] = expiry
            delivered.append(item)
        self._last_due_scan = now
        return delivered

    def _generation_scan(self, now: datetime) -> int:
        session = self.session_factory()
        try:
            return self.schedules.sync_generate_all(session, now)
        finally:
            session.close()

    # ==================== RUNNERS ====================

    async def _run(self, kind: str, body: Callable, now: datetime):
        previous = self._running.get(kind)
        if previous is not None and not previous.done():
            logger.warning(f"Skipping {kind} scan: previous run still in progress")
            return None

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, body, now)
        self._running[kind] = future
        try:
            return await asyncio.wait_for(asyncio.shield(future), self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{kind} scan exceeded {self.timeout_seconds}s; will not overlap")
        except Exception:
            logger.exception(f"{kind} scan failed")
        return None

    async def run_due_scan(self, now: Optional[datetime] = None) -> Optional[List[FeedItem]]:
        """Mark missed doses and dispatch reminders/alerts not yet sent"""
        return await self._run("due", self._due_scan, now or datetime.now())

    async def run_generation_scan(self, now: Optional[datetime] = None) -> Optional[int]:
        """Extend every active medication's generation horizon"""
        generated = await self._run("generation", self._generation_scan, now or datetime.now())
        if generated:
            logger.info(f"Generation scan created {generated} intake event(s)")
        return generated

    async def _loop(self, runner: Callable, interval_seconds: float):
        while True:
            await runner()
            await asyncio.sleep(interval_seconds)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._loop(
                self.run_due_scan, scheduling_config.DUE_SCAN_INTERVAL_SECONDS
            )),
            asyncio.create_task(self._loop(
                self.run_generation_scan, scheduling_config.GENERATION_SCAN_INTERVAL_SECONDS
            )),
        ]
        logger.info("Background scans started")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Background scans stopped")
