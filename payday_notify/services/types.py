"""Domain records shared by the store, the scheduler, the dispatcher and the repositories.

Same shape regardless of storage backend (in-memory or SQLAlchemy).
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from payday_notify.core.constants import DEFAULT_QUIET_END, DEFAULT_QUIET_START, DEFAULT_REMINDER_TIME
from payday_notify.core.timeutil import parse_hhmm, utc_now


class NotificationType(str, Enum):
    PAYDAY_REMINDER = "payday_reminder"
    PARTNER_ACTIVITY = "partner_activity"
    MISSED_CONTRIBUTION = "missed_contribution"
    GOAL_MILESTONE = "goal_milestone"
    APPROVAL_REQUEST = "approval_request"
    SAFETY_POT_ALERT = "safety_pot_alert"
    STREAK_ACHIEVEMENT = "streak_achievement"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Channel(str, Enum):
    IN_APP = "in_app"
    PUSH = "push"
    EMAIL = "email"


# Preference flag that gates each notification category
CATEGORY_FIELDS: dict[NotificationType, str] = {
    NotificationType.PAYDAY_REMINDER: "payday_reminders",
    NotificationType.PARTNER_ACTIVITY: "partner_activity",
    NotificationType.MISSED_CONTRIBUTION: "missed_contributions",
    NotificationType.GOAL_MILESTONE: "goal_milestones",
    NotificationType.APPROVAL_REQUEST: "approval_requests",
    NotificationType.SAFETY_POT_ALERT: "safety_pot_alerts",
    NotificationType.STREAK_ACHIEVEMENT: "streak_achievements",
}

CHANNEL_FIELDS: dict[Channel, str] = {
    Channel.IN_APP: "in_app_notifications",
    Channel.PUSH: "push_notifications",
    Channel.EMAIL: "email_notifications",
}


class Notification(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    priority: Priority = Priority.MEDIUM
    user_id: str
    partnership_id: str | None = None
    related_entity_id: str | None = None  # goal id, expense id, ...
    read: bool = False
    read_at: datetime | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    scheduled_for: datetime | None = None
    expires_at: datetime | None = None


class QuietHours(BaseModel):
    enabled: bool = False
    start_time: str = DEFAULT_QUIET_START
    end_time: str = DEFAULT_QUIET_END
    timezone: str = "UTC"

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def check_hhmm(cls, v: str) -> str:
        t = parse_hhmm(v)
        return f"{t.hour:02d}:{t.minute:02d}"


Frequency = Literal["immediate", "hourly", "daily", "weekly"]


class NotificationPreferences(BaseModel):
    user_id: str
    payday_reminders: bool = True
    partner_activity: bool = True
    missed_contributions: bool = True
    goal_milestones: bool = True
    approval_requests: bool = True
    safety_pot_alerts: bool = True
    streak_achievements: bool = True
    email_notifications: bool = True
    push_notifications: bool = True
    in_app_notifications: bool = True
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    # Informational: batching is not implemented, every delivery is immediate
    frequency: Frequency = "immediate"
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def default(cls, user_id: str, timezone: str = "UTC") -> "NotificationPreferences":
        """Everything enabled, quiet hours off. Used when no record exists."""
        return cls(user_id=user_id, quiet_hours=QuietHours(timezone=timezone))

    def category_enabled(self, notification_type: NotificationType) -> bool:
        return bool(getattr(self, CATEGORY_FIELDS[notification_type]))

    def channel_enabled(self, channel: Channel) -> bool:
        return bool(getattr(self, CHANNEL_FIELDS[channel]))


ReminderTime = Literal["morning", "afternoon", "evening"]


class ReminderConfig(BaseModel):
    user_id: str
    payday: str
    custom_date: str | None = None
    # Computed by the allocation logic outside this service
    expected_contribution: float = 0.0
    currency: str = "GBP"
    partnership_id: str | None = None
    reminder_time: ReminderTime = DEFAULT_REMINDER_TIME
    timezone: str = "UTC"


class ReminderState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    FIRED = "fired"
    CANCELLED = "cancelled"


class ScheduledReminder(BaseModel):
    user_id: str
    # None only for a user cancelled before any reminder was configured
    config: ReminderConfig | None = None
    state: ReminderState = ReminderState.IDLE
    occurrence: date | None = None
    next_fire_at: datetime | None = None
    # Occurrence already turned into a notification; a second firing for it is skipped
    last_fired_occurrence: date | None = None
    job_id: str | None = None
    updated_at: datetime = Field(default_factory=utc_now)


class UserProfile(BaseModel):
    user_id: str
    email: str | None = None
    timezone: str = "UTC"
    currency: str = "GBP"
    payday: str | None = None
    custom_payday: str | None = None
    partnership_id: str | None = None
