"""
Frequency Parser
Maps free-text dosing frequencies ("twice daily", "every 6 hours") to daily clock-times
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


class FrequencyKind(str, Enum):
    """Recognized frequency categories"""
    ONCE = "once"
    TWICE = "twice"
    THREE_TIMES = "three_times"
    FOUR_TIMES = "four_times"
    INTERVAL = "interval"
    FALLBACK = "fallback"


FALLBACK_TIME = "08:00"

DAILY_TIMES = {
    FrequencyKind.ONCE: ("08:00",),
    FrequencyKind.TWICE: ("08:00", "20:00"),
    FrequencyKind.THREE_TIMES: ("08:00", "14:00", "20:00"),
    FrequencyKind.FOUR_TIMES: ("06:00", "12:00", "18:00", "22:00"),
}

# Checked in order; the first matching category wins
_PHRASES: List[Tuple[FrequencyKind, re.Pattern]] = [
    (FrequencyKind.ONCE, re.compile(r"once|\bone time\b|\b1 times?\b|\bqd\b|\bod\b")),
    (FrequencyKind.TWICE, re.compile(r"twice|\btwo times\b|\b2 times\b|\bbid\b|\bb\.i\.d\b")),
    (FrequencyKind.THREE_TIMES, re.compile(r"three times|thrice|\b3 times\b|\btid\b|\bt\.i\.d\b")),
    (FrequencyKind.FOUR_TIMES, re.compile(r"four times|\b4 times\b|\bqid\b|\bq\.i\.d\b")),
]

_INTERVAL = re.compile(r"every\s+(\d+)?\s*(?:hours?|hrs?)\b")


@dataclass(frozen=True)
class DoseTimes:
    """Parsed frequency: an ordered tuple of 'HH:MM' clock-times"""
    kind: FrequencyKind
    times: Tuple[str, ...]
    interval_hours: Optional[int] = None

    @property
    def doses_per_day(self) -> int:
        return len(self.times)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "times": list(self.times),
            "interval_hours": self.interval_hours,
        }


def _interval_grid(hours: int) -> Tuple[str, ...]:
    count = 24 // hours
    return tuple(f"{(i * hours):02d}:00" for i in range(count))


def parse_frequency(text: Optional[str]) -> DoseTimes:
    """
    Parse a free-text frequency into daily clock-times.

    Never raises: unrecognized or empty text falls back to a single
    08:00 dose.

    Examples:
        >>> parse_frequency("three times daily").times
        ('08:00', '14:00', '20:00')
        >>> parse_frequency("every 6 hours").times
        ('00:00', '06:00', '12:00', '18:00')
    """
    normalized = " ".join((text or "").lower().split())

    for kind, pattern in _PHRASES:
        if pattern.search(normalized):
            return DoseTimes(kind=kind, times=DAILY_TIMES[kind])

    match = _INTERVAL.search(normalized)
    if match:
        hours = int(match.group(1)) if match.group(1) else 1
        if 1 <= hours <= 24:
            return DoseTimes(
                kind=FrequencyKind.INTERVAL,
                times=_interval_grid(hours),
                interval_hours=hours,
            )
        logger.debug(f"Interval of {hours}h out of range in frequency '{text}'")

    if normalized:
        logger.debug(f"Unrecognized frequency '{text}', falling back to {FALLBACK_TIME}")
    return DoseTimes(kind=FrequencyKind.FALLBACK, times=(FALLBACK_TIME,))


def frequency_times(text: Optional[str]) -> List[str]:
    """Convenience wrapper returning the clock-times as a list"""
    return list(parse_frequency(text).times)
