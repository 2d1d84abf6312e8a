"""
Schedule Generator
Expands dose schedules (clock-time + weekday mask) into concrete dose-due timestamps
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta

from errors import ValidationError


logger = logging.getLogger(__name__)


WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
)
ALL_DAYS = 0b1111111


def mask_from_days(days: Optional[Dict[str, bool]]) -> int:
    """
    Build a weekday mask from a {"monday": True, ...} mapping.
    Missing days default to enabled; None means every day.
    """
    if days is None:
        return ALL_DAYS
    mask = 0
    for bit, name in enumerate(WEEKDAY_NAMES):
        if days.get(name, True):
            mask |= 1 << bit
    return mask


def days_from_mask(mask: int) -> Dict[str, bool]:
    return {name: bool(mask & (1 << bit)) for bit, name in enumerate(WEEKDAY_NAMES)}


def mask_includes(mask: int, weekday: int) -> bool:
    """True if the weekday (0=Monday) is permitted by the mask"""
    return bool(mask & (1 << weekday))


def parse_clock_time(value, field: str = "scheduled_time") -> time:
    """Accepts a time object or an 'HH:MM' string"""
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid clock time '{value}', expected HH:MM", field=field)


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an offset-aware datetime to naive local time, the time base of
    every stored timestamp. Naive values are assumed local already.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


@dataclass(frozen=True)
class ScheduleSlot:
    """A daily dose time restricted to the weekdays in day_mask"""
    time_of_day: time
    day_mask: int = ALL_DAYS
    schedule_id: Optional[int] = None

    @classmethod
    def from_clock(cls, clock: str, day_mask: int = ALL_DAYS, schedule_id: Optional[int] = None) -> "ScheduleSlot":
        return cls(parse_clock_time(clock), day_mask, schedule_id)

    def permits(self, day: date) -> bool:
        return mask_includes(self.day_mask, day.weekday())


@dataclass(frozen=True)
class DoseCandidate:
    """A pending dose-due event ready to be persisted"""
    medication_id: int
    schedule_id: Optional[int]
    scheduled_time: datetime

    @property
    def key(self) -> Tuple[int, Optional[int], datetime]:
        return (self.medication_id, self.schedule_id, self.scheduled_time)


@dataclass(frozen=True)
class DueDose:
    """A dose computed on demand, without a persisted ledger row"""
    medication_id: int
    schedule_id: Optional[int]
    scheduled_time: datetime
    is_overdue: bool
    minutes_until: int


def _days_between(first: date, last: date) -> Iterable[date]:
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def generate_dose_candidates(
    medication_id: int,
    start_date: date,
    end_date: Optional[date],
    slots: List[ScheduleSlot],
    window_start: datetime,
    window_end: datetime
) -> List[DoseCandidate]:
    """
    Expand slots into dose-due timestamps inside [window_start, window_end).

    Days outside [start_date, end_date] are skipped; end_date is
    inclusive through the end of that day. Candidates are sorted by
    time and unique per (medication, schedule, time).
    """
    if not slots or window_end <= window_start:
        return []

    first_day = max(window_start.date(), start_date)
    last_day = window_end.date()
    if end_date is not None:
        last_day = min(last_day, end_date)

    seen = set()
    candidates = []
    for day in _days_between(first_day, last_day):
        for slot in slots:
            if not slot.permits(day):
                continue
            scheduled = datetime.combine(day, slot.time_of_day)
            if not (window_start <= scheduled < window_end):
                continue
            candidate = DoseCandidate(medication_id, slot.schedule_id, scheduled)
            if candidate.key in seen:
                continue
            seen.add(candidate.key)
            candidates.append(candidate)

    candidates.sort(key=lambda c: (c.scheduled_time, c.schedule_id or 0))
    return candidates


def horizon_window(now: datetime, horizon_days: int) -> Tuple[datetime, datetime]:
    """Whole calendar days: midnight today up to midnight after the horizon"""
    start = datetime.combine(now.date(), time.min)
    return start, start + timedelta(days=horizon_days)


def compute_due_doses(
    medication_id: int,
    slots: List[ScheduleSlot],
    start_date: date,
    end_date: Optional[date],
    now: datetime,
    hours_ahead: int = 24
) -> List[DueDose]:
    """
    On-demand due-dose computation for the next `hours_ahead` hours.

    An occurrence that already elapsed today is reported with
    is_overdue=True; elapsed times otherwise roll forward to their next
    permitted day. Nothing is reported as past-due for any other day.
    """
    today_start = datetime.combine(now.date(), time.min)
    lookahead_end = now + timedelta(hours=hours_ahead)

    due = []
    for candidate in generate_dose_candidates(
        medication_id, start_date, end_date, slots,
        today_start, lookahead_end + timedelta(microseconds=1)
    ):
        # The window opens at midnight today, so anything elapsed is today's
        scheduled = candidate.scheduled_time
        is_overdue = scheduled <= now
        due.append(DueDose(
            medication_id=medication_id,
            schedule_id=candidate.schedule_id,
            scheduled_time=scheduled,
            is_overdue=is_overdue,
            minutes_until=int((scheduled - now).total_seconds() // 60),
        ))
    return due
