"""
Services Module
Business logic layer for the CareLedger application
"""

from services.access_service import Actor, AccessService, access_service
from services.schedule_service import ScheduleService, schedule_service
from services.medication_service import MedicationService, medication_service
from services.adherence_service import AdherenceService, adherence_service
from services.vital_service import VitalService, vital_service
from services.reminder_service import ReminderService, reminder_service
from services.summary_service import HealthSummaryService, summary_service


__all__ = [
    # Service classes
    "Actor",
    "AccessService",
    "ScheduleService",
    "MedicationService",
    "AdherenceService",
    "VitalService",
    "ReminderService",
    "HealthSummaryService",
    # Singleton instances
    "access_service",
    "schedule_service",
    "medication_service",
    "adherence_service",
    "vital_service",
    "reminder_service",
    "summary_service",
]
