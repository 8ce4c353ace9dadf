"""Profile fields the pipeline consumes: contact e-mail, timezone, currency, payday."""
from sqlalchemy import Column, String

from payday_notify.db.base import Base


class UserProfileRecord(Base):
    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    currency = Column(String(8), nullable=False, default="GBP")
    payday = Column(String(32), nullable=True)  # '15', 'last-friday', 'last-working-day', 'custom'
    custom_payday = Column(String(8), nullable=True)  # 'DD' or 'DD-MM'
    partnership_id = Column(String(64), nullable=True)
