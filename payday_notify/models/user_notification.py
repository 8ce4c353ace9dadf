"""User notification: persisted ledger row (read state, rendered text, type-specific metadata).

id: deterministic '<prefix>_<user_id>_<timestamp>' so duplicate firings collapse to one row.
read_at: NULL = unread; set once when the user marks it read (never cleared).
metadata: JSON (JSONB on Postgres) for type-specific payload (amounts, goal name, payday, ...).
"""
from sqlalchemy import JSON, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from payday_notify.db.base import Base


class UserNotification(Base):
    __tablename__ = "user_notifications"

    id = Column(String(128), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(32), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(16), nullable=False, default="medium")
    partnership_id = Column(String(64), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    action_url = Column(String(255), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    payload = Column("metadata", JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)  # column name 'metadata' in DB
