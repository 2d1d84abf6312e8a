"""
Test Tools Package
Tests for the tools module (frequency parser, schedule generator, threshold evaluator)
"""

__all__ = [
    "test_frequency_parser",
    "test_schedule_generator",
    "test_threshold_evaluator",
]
