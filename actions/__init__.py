"""
Actions Module
Reminder ranking and the background scans that drive it
"""

from .reminder_engine import (
    FeedItem,
    FeedItemType,
    Urgency,
    ReminderEngine,
    reminder_engine,
    reminder_key,
    alert_key
)


__all__ = [
    "FeedItem",
    "FeedItemType",
    "Urgency",
    "ReminderEngine",
    "reminder_engine",
    "reminder_key",
    "alert_key"
]
