from payday_notify.db.base import Base
from payday_notify.db.session import get_engine, get_session_factory
from payday_notify.db.tables import ALL_TABLE_NAMES, NOTIFICATION_TABLE_NAMES

__all__ = ["get_engine", "get_session_factory", "Base", "ALL_TABLE_NAMES", "NOTIFICATION_TABLE_NAMES"]
