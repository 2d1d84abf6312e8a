"""
Tools Package
Pure scheduling and evaluation helpers for the CareLedger system
"""

from .frequency_parser import (
    FrequencyKind,
    DoseTimes,
    parse_frequency,
    frequency_times
)

from .schedule_generator import (
    ScheduleSlot,
    DoseCandidate,
    DueDose,
    ALL_DAYS,
    mask_from_days,
    days_from_mask,
    parse_clock_time,
    to_local_naive,
    generate_dose_candidates,
    compute_due_doses,
    horizon_window
)

from .threshold_evaluator import (
    VitalAlert,
    ThresholdEvaluator,
    threshold_evaluator,
    evaluate_reading,
    evaluate_readings
)

__all__ = [
    # Frequency Parser
    "FrequencyKind",
    "DoseTimes",
    "parse_frequency",
    "frequency_times",

    # Schedule Generator
    "ScheduleSlot",
    "DoseCandidate",
    "DueDose",
    "ALL_DAYS",
    "mask_from_days",
    "days_from_mask",
    "parse_clock_time",
    "to_local_naive",
    "generate_dose_candidates",
    "compute_due_doses",
    "horizon_window",

    # Threshold Evaluator
    "VitalAlert",
    "ThresholdEvaluator",
    "threshold_evaluator",
    "evaluate_reading",
    "evaluate_readings"
]
