"""
Threshold Evaluator
Compares vital-signs readings against per-patient parameter bounds
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from dataclasses import dataclass
from datetime import datetime


logger = logging.getLogger(__name__)


PARAMETER_LABELS = {
    "systolic_bp": "Systolic Blood Pressure",
    "diastolic_bp": "Diastolic Blood Pressure",
    "heart_rate": "Heart Rate",
    "respiratory_rate": "Respiratory Rate",
    "temperature": "Temperature",
    "oxygen_saturation": "Oxygen Saturation",
    "blood_glucose": "Blood Glucose",
    "weight_kg": "Weight",
    "pain_level": "Pain Level",
}


@dataclass(frozen=True)
class VitalAlert:
    """An out-of-range value; identity is (reading_id, parameter)"""
    reading_id: int
    patient_id: int
    parameter: str
    value: float
    min_value: Optional[float]
    max_value: Optional[float]
    is_critical: bool
    recorded_at: datetime

    @property
    def key(self) -> str:
        return f"{self.reading_id}_{self.parameter}"

    @property
    def label(self) -> str:
        return PARAMETER_LABELS.get(self.parameter, self.parameter)

    def describe(self) -> str:
        low = "-" if self.min_value is None else f"{self.min_value:g}"
        high = "-" if self.max_value is None else f"{self.max_value:g}"
        return f"{self.label} is {self.value:g} (normal range: {low}-{high})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "reading_id": self.reading_id,
            "patient_id": self.patient_id,
            "parameter": self.parameter,
            "value": self.value,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "is_critical": self.is_critical,
            "recorded_at": self.recorded_at.isoformat(),
        }


def is_out_of_range(value: float, min_value: Optional[float], max_value: Optional[float]) -> bool:
    if min_value is not None and value < min_value:
        return True
    if max_value is not None and value > max_value:
        return True
    return False


def _parameter_name(threshold) -> str:
    parameter = threshold.parameter
    return getattr(parameter, "value", parameter)


def evaluate_reading(reading, thresholds: Iterable) -> List[VitalAlert]:
    """
    Evaluate one reading against a patient's thresholds.

    Only parameters present (non-null) in the reading are checked. Pure:
    nothing is persisted.
    """
    alerts: Dict[str, VitalAlert] = {}
    for threshold in thresholds:
        if threshold.patient_id != reading.patient_id:
            continue
        parameter = _parameter_name(threshold)
        value = getattr(reading, parameter, None)
        if value is None:
            continue
        if not is_out_of_range(value, threshold.min_value, threshold.max_value):
            continue
        alert = VitalAlert(
            reading_id=reading.id,
            patient_id=reading.patient_id,
            parameter=parameter,
            value=value,
            min_value=threshold.min_value,
            max_value=threshold.max_value,
            is_critical=bool(threshold.is_critical),
            recorded_at=reading.recorded_at,
        )
        alerts.setdefault(alert.key, alert)
    return list(alerts.values())


def evaluate_readings(readings: Iterable, thresholds: Iterable) -> List[VitalAlert]:
    """Evaluate many readings; alerts are unique per (reading, parameter), newest first"""
    thresholds = list(thresholds)
    alerts: Dict[str, VitalAlert] = {}
    for reading in readings:
        for alert in evaluate_reading(reading, thresholds):
            alerts.setdefault(alert.key, alert)
    return sorted(alerts.values(), key=lambda a: a.recorded_at, reverse=True)


class ThresholdEvaluator:
    """Injectable wrapper around the evaluation functions"""

    def evaluate(self, reading, thresholds: Iterable) -> List[VitalAlert]:
        return evaluate_reading(reading, thresholds)

    def evaluate_many(self, readings: Iterable, thresholds: Iterable) -> List[VitalAlert]:
        return evaluate_readings(readings, thresholds)


threshold_evaluator = ThresholdEvaluator()
