"""Scheduled payday reminder: one row per user, survives restarts.

config: JSON copy of the reminder config (payday, currency, expected contribution, timezone, ...).
next_fire_at: when the reminder timer should fire; the sweep fires rows past this time.
last_fired_occurrence: payday already reminded for (a second firing for it is skipped).
"""
from sqlalchemy import JSON, Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from payday_notify.db.base import Base


class ReminderSchedule(Base):
    __tablename__ = "scheduled_reminders"

    user_id = Column(String(64), primary_key=True)
    config = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    state = Column(String(16), nullable=False, default="idle", index=True)  # idle | scheduled | fired | cancelled
    occurrence = Column(Date, nullable=True)
    next_fire_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_fired_occurrence = Column(Date, nullable=True)
    job_id = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
