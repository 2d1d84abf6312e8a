"""
Tests for Threshold Evaluator Tool
"""

import pytest
from types import SimpleNamespace
from datetime import datetime

from tools.threshold_evaluator import (
    VitalAlert,
    ThresholdEvaluator,
    evaluate_reading,
    evaluate_readings,
    is_out_of_range,
)


def make_reading(reading_id=1, patient_id=1, recorded_at=None, **values):
    fields = {
        "systolic_bp": None, "diastolic_bp": None, "heart_rate": None,
        "respiratory_rate": None, "temperature": None, "oxygen_saturation": None,
        "blood_glucose": None, "weight_kg": None, "pain_level": None,
    }
    fields.update(values)
    return SimpleNamespace(
        id=reading_id,
        patient_id=patient_id,
        recorded_at=recorded_at or datetime(2026, 3, 11, 9, 0),
        **fields
    )


def make_threshold(parameter, min_value=None, max_value=None, is_critical=False, patient_id=1):
    return SimpleNamespace(
        patient_id=patient_id,
        parameter=parameter,
        min_value=min_value,
        max_value=max_value,
        is_critical=is_critical,
    )


class TestRange:

    @pytest.mark.unit
    def test_bounds_are_inclusive(self):
        assert not is_out_of_range(140, 90, 140)
        assert not is_out_of_range(90, 90, 140)
        assert is_out_of_range(141, 90, 140)
        assert is_out_of_range(89.9, 90, 140)

    @pytest.mark.unit
    def test_open_ended_bounds(self):
        assert not is_out_of_range(1000, None, None)
        assert is_out_of_range(0, 0.5, None)
        assert not is_out_of_range(0, None, 10)


class TestEvaluateReading:

    @pytest.mark.unit
    def test_single_high_value_yields_one_alert(self):
        reading = make_reading(systolic_bp=170)
        alerts = evaluate_reading(reading, [make_threshold("systolic_bp", 90, 140, is_critical=True)])

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.key == "1_systolic_bp"
        assert alert.is_critical
        assert alert.value == 170
        assert "Systolic Blood Pressure is 170" in alert.describe()

    @pytest.mark.unit
    def test_absent_parameter_is_not_evaluated(self):
        reading = make_reading(heart_rate=72)
        assert evaluate_reading(reading, [make_threshold("systolic_bp", 90, 140)]) == []

    @pytest.mark.unit
    def test_zero_is_a_value(self):
        reading = make_reading(pain_level=0)
        alerts = evaluate_reading(reading, [make_threshold("pain_level", 1, 10)])
        assert len(alerts) == 1

    @pytest.mark.unit
    def test_other_patients_thresholds_ignored(self):
        reading = make_reading(systolic_bp=170)
        assert evaluate_reading(reading, [make_threshold("systolic_bp", 90, 140, patient_id=2)]) == []

    @pytest.mark.unit
    def test_duplicate_thresholds_produce_one_alert(self):
        reading = make_reading(systolic_bp=170)
        thresholds = [make_threshold("systolic_bp", 90, 140), make_threshold("systolic_bp", 100, 150)]
        assert len(evaluate_reading(reading, thresholds)) == 1

    @pytest.mark.unit
    def test_multiple_parameters(self):
        reading = make_reading(systolic_bp=170, oxygen_saturation=88, heart_rate=70)
        thresholds = [
            make_threshold("systolic_bp", 90, 140),
            make_threshold("oxygen_saturation", 92, None, is_critical=True),
            make_threshold("heart_rate", 50, 100),
        ]
        keys = {a.key for a in evaluate_reading(reading, thresholds)}
        assert keys == {"1_systolic_bp", "1_oxygen_saturation"}


class TestEvaluateReadings:

    @pytest.mark.unit
    def test_newest_first(self):
        older = make_reading(1, systolic_bp=170, recorded_at=datetime(2026, 3, 10, 8, 0))
        newer = make_reading(2, systolic_bp=180, recorded_at=datetime(2026, 3, 11, 8, 0))
        alerts = ThresholdEvaluator().evaluate_many(
            [older, newer], [make_threshold("systolic_bp", 90, 140)]
        )
        assert [a.reading_id for a in alerts] == [2, 1]

    @pytest.mark.unit
    def test_alert_serialization(self):
        alert = VitalAlert(
            reading_id=3, patient_id=1, parameter="temperature", value=39.2,
            min_value=36.0, max_value=38.0, is_critical=False,
            recorded_at=datetime(2026, 3, 11, 9, 0),
        )
        data = alert.to_dict()
        assert data["key"] == "3_temperature"
        assert data["recorded_at"] == "2026-03-11T09:00:00"
        assert alert.describe() == "Temperature is 39.2 (normal range: 36-38)"

    @pytest.mark.unit
    def test_no_thresholds_no_alerts(self):
        assert evaluate_readings([make_reading(systolic_bp=300)], []) == []
