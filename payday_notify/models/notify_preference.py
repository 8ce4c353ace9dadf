"""Per-user notification preferences: category toggles, channel toggles, quiet hours.

One row per user_id. A missing row means the all-enabled default.
"""
from sqlalchemy import Boolean, Column, DateTime, String

from payday_notify.db.base import Base


class NotifyPreference(Base):
    __tablename__ = "notification_preferences"

    user_id = Column(String(64), primary_key=True)
    # Categories
    payday_reminders = Column(Boolean, nullable=False, default=True)
    partner_activity = Column(Boolean, nullable=False, default=True)
    missed_contributions = Column(Boolean, nullable=False, default=True)
    goal_milestones = Column(Boolean, nullable=False, default=True)
    approval_requests = Column(Boolean, nullable=False, default=True)
    safety_pot_alerts = Column(Boolean, nullable=False, default=True)
    streak_achievements = Column(Boolean, nullable=False, default=True)
    # Channels
    email_notifications = Column(Boolean, nullable=False, default=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    in_app_notifications = Column(Boolean, nullable=False, default=True)
    # Quiet hours ('HH:MM' local time in quiet_timezone)
    quiet_enabled = Column(Boolean, nullable=False, default=False)
    quiet_start = Column(String(5), nullable=False, default="22:00")
    quiet_end = Column(String(5), nullable=False, default="08:00")
    quiet_timezone = Column(String(64), nullable=False, default="UTC")
    frequency = Column(String(16), nullable=False, default="immediate")  # immediate | hourly | daily | weekly
    updated_at = Column(DateTime(timezone=True), nullable=False)
