"""
Tests for Reminder Engine
Tests urgency derivation, feed ordering and snooze times
"""

import pytest
from types import SimpleNamespace
from datetime import datetime, timedelta

from actions.reminder_engine import (
    FeedItemType,
    ReminderEngine,
    Urgency,
    reminder_key,
)
from tools.threshold_evaluator import VitalAlert


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def engine():
    return ReminderEngine(medium_window_minutes=30, default_snooze_minutes=15)


@pytest.fixture
def now():
    return datetime(2026, 3, 11, 10, 0)


@pytest.fixture
def medication():
    return SimpleNamespace(id=7, name="Lisinopril", dosage="10mg", form="tablet", instructions="")


def make_event(event_id, scheduled_time, patient_id=1):
    return SimpleNamespace(id=event_id, patient_id=patient_id, scheduled_time=scheduled_time)


def make_alert(reading_id, recorded_at, is_critical):
    return VitalAlert(
        reading_id=reading_id, patient_id=1, parameter="heart_rate", value=130,
        min_value=50, max_value=100, is_critical=is_critical, recorded_at=recorded_at,
    )


# =============================================================================
# Urgency
# =============================================================================

class TestUrgency:

    @pytest.mark.unit
    def test_overdue_is_high(self, engine, now):
        assert engine.reminder_urgency(now - timedelta(minutes=5), now) == Urgency.HIGH
        assert engine.reminder_urgency(now, now) == Urgency.HIGH

    @pytest.mark.unit
    def test_within_window_is_medium(self, engine, now):
        assert engine.reminder_urgency(now + timedelta(minutes=10), now) == Urgency.MEDIUM
        assert engine.reminder_urgency(now + timedelta(minutes=30), now) == Urgency.MEDIUM

    @pytest.mark.unit
    def test_later_is_low(self, engine, now):
        assert engine.reminder_urgency(now + timedelta(hours=2), now) == Urgency.LOW

    @pytest.mark.unit
    def test_alert_urgency(self, engine):
        assert engine.alert_urgency(True) == Urgency.HIGH
        assert engine.alert_urgency(False) == Urgency.MEDIUM


# =============================================================================
# Feed Ordering
# =============================================================================

class TestRank:

    @pytest.mark.unit
    def test_urgency_ordering(self, engine, now, medication):
        items = [
            engine.build_reminder(make_event(3, now + timedelta(hours=2)), medication, now),
            engine.build_reminder(make_event(2, now + timedelta(minutes=10)), medication, now),
            engine.build_reminder(make_event(1, now - timedelta(minutes=5)), medication, now),
        ]
        ranked = engine.rank(items)

        assert [i.key for i in ranked] == ["intake:1", "intake:2", "intake:3"]
        assert [i.urgency for i in ranked] == [Urgency.HIGH, Urgency.MEDIUM, Urgency.LOW]

    @pytest.mark.unit
    def test_reminders_before_alerts_within_urgency(self, engine, now, medication):
        critical = engine.build_alert(make_alert(9, now - timedelta(hours=1), is_critical=True))
        overdue = engine.build_reminder(make_event(1, now - timedelta(minutes=5)), medication, now)

        ranked = engine.rank([critical, overdue])

        assert ranked[0].item_type == FeedItemType.MEDICATION_REMINDER
        assert ranked[1].item_type == FeedItemType.VITAL_ALERT

    @pytest.mark.unit
    def test_alerts_most_recent_first(self, engine, now):
        older = engine.build_alert(make_alert(1, now - timedelta(days=2), is_critical=False))
        newer = engine.build_alert(make_alert(2, now - timedelta(hours=1), is_critical=False))

        assert [i.key for i in engine.rank([older, newer])] == ["vital:2_heart_rate", "vital:1_heart_rate"]

    @pytest.mark.unit
    def test_duplicate_keys_collapse(self, engine, now, medication):
        event = make_event(1, now)
        items = [engine.build_reminder(event, medication, now), engine.build_reminder(event, medication, now)]
        assert len(engine.rank(items)) == 1


# =============================================================================
# Snooze
# =============================================================================

class TestSnooze:

    @pytest.mark.unit
    def test_snooze_future_reminder_counts_from_due_time(self, engine, now):
        due = now + timedelta(minutes=20)
        assert engine.snooze_until(due, now) == due + timedelta(minutes=15)

    @pytest.mark.unit
    def test_snooze_overdue_reminder_counts_from_now(self, engine, now):
        assert engine.snooze_until(now - timedelta(hours=1), now, 30) == now + timedelta(minutes=30)

    @pytest.mark.unit
    def test_snoozed_reminder_urgency_uses_snooze_time(self, engine, now, medication):
        event = make_event(1, now - timedelta(minutes=5))
        item = engine.build_reminder(event, medication, now, snoozed_until=now + timedelta(hours=1))

        assert item.urgency == Urgency.LOW
        assert item.key == reminder_key(1)
        assert item.to_dict()["snoozed_until"] == (now + timedelta(hours=1)).isoformat()
        assert item.data["is_overdue"] is True
