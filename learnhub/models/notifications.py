"""
Notification data models
"""
import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from learnhub.models.course import utc_now

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class NotificationCategory(str, Enum):
    COURSE = "course"
    MESSAGE = "message"
    SYSTEM = "system"
    ACHIEVEMENT = "achievement"


class NotificationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _check_hhmm(value: Optional[str]) -> Optional[str]:
    if value is not None and not _HHMM.match(value):
        raise ValueError(f"time must use HH:MM format, got {value!r}")
    return value


def _check_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone {value!r}")
    return value


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority = NotificationPriority.MEDIUM
    is_read: bool = False
    timestamp: datetime = Field(default_factory=utc_now)
    action_url: Optional[str] = None


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1)
    message: str
    category: NotificationCategory
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_url: Optional[str] = None


class CategoryPreference(BaseModel):
    enabled: bool = True
    sound: bool = True
    desktop: bool = True


class CategoryPreferenceUpdate(BaseModel):
    enabled: Optional[bool] = None
    sound: Optional[bool] = None
    desktop: Optional[bool] = None


class QuietHours(BaseModel):
    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"

    @field_validator("start", "end")
    @classmethod
    def validate_times(cls, v):
        return _check_hhmm(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return _check_timezone(v)


class QuietHoursUpdate(BaseModel):
    enabled: Optional[bool] = None
    start: Optional[str] = None
    end: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def validate_times(cls, v):
        return _check_hhmm(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return _check_timezone(v)


def default_categories() -> Dict[NotificationCategory, CategoryPreference]:
    return {
        NotificationCategory.COURSE: CategoryPreference(enabled=True, sound=True, desktop=True),
        NotificationCategory.MESSAGE: CategoryPreference(enabled=True, sound=True, desktop=True),
        NotificationCategory.SYSTEM: CategoryPreference(enabled=True, sound=False, desktop=True),
        NotificationCategory.ACHIEVEMENT: CategoryPreference(enabled=True, sound=True, desktop=False),
    }


class NotificationPreferences(BaseModel):
    user_id: str
    categories: Dict[NotificationCategory, CategoryPreference] = Field(default_factory=default_categories)
    quiet_hours: QuietHours = Field(default_factory=QuietHours)


class NotificationPreferencesUpdate(BaseModel):
    categories: Dict[NotificationCategory, CategoryPreferenceUpdate] = Field(default_factory=dict)
    quiet_hours: Optional[QuietHoursUpdate] = None


class DeliveryDecision(BaseModel):
    """Whether a freshly stored notification should be surfaced right now"""
    notification: Notification
    deliver: bool
    sound: bool = False
    desktop: bool = False
    reason: Optional[str] = None


class NotificationSummary(BaseModel):
    total_count: int
    unread_count: int
    notifications: List[Notification]
    categories: Dict[str, int]
    generated_at: datetime = Field(default_factory=utc_now)
