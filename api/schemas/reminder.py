"""
Reminder Schemas
Pydantic models for the reminder feed
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field


class FeedItemResponse(BaseModel):
    key: str
    type: str
    urgency: str
    title: str
    message: str
    occurred_at: datetime
    patient_id: int
    data: Dict[str, Any] = {}
    actions: List[str] = []
    read: bool = False
    snoozed_until: Optional[datetime] = None


class ReminderFeed(BaseModel):
    items: List[FeedItemResponse]
    unread_count: int
    total: int


class SnoozeRequest(BaseModel):
    minutes: Optional[int] = Field(None, ge=1, le=24 * 60)


class SnoozeResponse(BaseModel):
    key: str
    event_id: int
    snoozed_until: datetime


class ReadResponse(BaseModel):
    key: str
    read: bool
    read_at: datetime


class ReadAllResponse(BaseModel):
    marked: int
