"""
Reminder Engine
Derives urgency for dose reminders and vital alerts and ranks them into one feed
"""

import logging
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from config import scheduling_config
from tools.threshold_evaluator import VitalAlert


logger = logging.getLogger(__name__)


class FeedItemType(str, Enum):
    """Kinds of feed entries"""
    MEDICATION_REMINDER = "medication_reminder"
    VITAL_ALERT = "vital_alert"


class Urgency(str, Enum):
    """Feed urgency, most urgent first"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {Urgency.HIGH: 0, Urgency.MEDIUM: 1, Urgency.LOW: 2}


def reminder_key(event_id: int) -> str:
    return f"intake:{event_id}"


def alert_key(alert: VitalAlert) -> str:
    return f"vital:{alert.key}"


@dataclass
class FeedItem:
    """One entry of the merged reminder/alert feed"""
    key: str
    item_type: FeedItemType
    urgency: Urgency
    title: str
    message: str
    occurred_at: datetime  # due time for reminders, reading time for alerts
    patient_id: int
    data: Dict[str, Any] = field(default_factory=dict)
    actions: List[str] = field(default_factory=list)
    read: bool = False
    snoozed_until: Optional[datetime] = None

    def sort_key(self) -> tuple:
        if self.item_type == FeedItemType.MEDICATION_REMINDER:
            return (self.urgency.rank, 0, self.occurred_at.timestamp())
        return (self.urgency.rank, 1, -self.occurred_at.timestamp())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "type": self.item_type.value,
            "urgency": self.urgency.value,
            "title": self.title,
            "message": self.message,
            "occurred_at": self.occurred_at.isoformat(),
            "patient_id": self.patient_id,
            "data": self.data,
            "actions": self.actions,
            "read": self.read,
            "snoozed_until": self.snoozed_until.isoformat() if self.snoozed_until else None,
        }


class ReminderEngine:
    """
    Engine for ranking medication reminders and vital alerts

    Responsibilities:
    - Derive reminder urgency from time-to-due
    - Derive alert urgency from threshold criticality
    - Merge and order the feed
    - Compute snooze times
    """

    def __init__(
        self,
        medium_window_minutes: int = scheduling_config.REMINDER_MEDIUM_WINDOW_MINUTES,
        default_snooze_minutes: int = scheduling_config.SNOOZE_DEFAULT_MINUTES
    ):
        self.medium_window_minutes = medium_window_minutes
        self.default_snooze_minutes = default_snooze_minutes

    def reminder_urgency(self, due_at: datetime, now: datetime) -> Urgency:
        """Overdue is high, due within the medium window is medium, else low"""
        minutes = (due_at - now).total_seconds() / 60
        if minutes <= 0:
            return Urgency.HIGH
        if minutes <= self.medium_window_minutes:
            return Urgency.MEDIUM
        return Urgency.LOW

    @staticmethod
    def alert_urgency(is_critical: bool) -> Urgency:
        return Urgency.HIGH if is_critical else Urgency.MEDIUM

    def build_reminder(
        self,
        event,
        medication,
        now: datetime,
        snoozed_until: Optional[datetime] = None,
        read: bool = False
    ) -> FeedItem:
        """Feed item for a pending intake event"""
        effective_due = event.scheduled_time
        if snoozed_until and snoozed_until > effective_due:
            effective_due = snoozed_until

        form = getattr(medication.form, "value", medication.form)
        return FeedItem(
            key=reminder_key(event.id),
            item_type=FeedItemType.MEDICATION_REMINDER,
            urgency=self.reminder_urgency(effective_due, now),
            title="Medication Due",
            message=f"Time to take {medication.name} {medication.dosage}",
            occurred_at=event.scheduled_time,
            patient_id=event.patient_id,
            data={
                "event_id": event.id,
                "medication_id": medication.id,
                "name": medication.name,
                "dosage": medication.dosage,
                "form": form,
                "instructions": medication.instructions or "",
                "scheduled_time": event.scheduled_time.isoformat(),
                "is_overdue": event.scheduled_time <= now,
            },
            actions=["mark_taken", "snooze", "skip"],
            read=read,
            snoozed_until=snoozed_until,
        )

    def build_alert(self, alert: VitalAlert, read: bool = False) -> FeedItem:
        """Feed item for an out-of-range vital"""
        return FeedItem(
            key=alert_key(alert),
            item_type=FeedItemType.VITAL_ALERT,
            urgency=self.alert_urgency(alert.is_critical),
            title="Critical Vital Alert" if alert.is_critical else "Vital Sign Alert",
            message=alert.describe(),
            occurred_at=alert.recorded_at,
            patient_id=alert.patient_id,
            data=alert.to_dict(),
            actions=["acknowledge", "view_details", "contact_doctor"],
            read=read,
        )

    @staticmethod
    def rank(items: List[FeedItem]) -> List[FeedItem]:
        """
        High before medium before low. Within one urgency reminders come
        first (soonest due first), then alerts (most recent first).
        """
        unique: Dict[str, FeedItem] = {}
        for item in items:
            unique.setdefault(item.key, item)
        return sorted(unique.values(), key=FeedItem.sort_key)

    def snooze_until(self, scheduled_time: datetime, now: datetime, minutes: Optional[int] = None) -> datetime:
        """Snoozing an already-due reminder counts from now"""
        minutes = self.default_snooze_minutes if minutes is None else minutes
        return max(scheduled_time, now) + timedelta(minutes=minutes)


# Singleton instance
reminder_engine = ReminderEngine()
