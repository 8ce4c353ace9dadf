from payday_notify.services.notification_store import NotificationStore
from payday_notify.services.repository import InMemoryRepository, NotificationRepository

__all__ = ["NotificationStore", "InMemoryRepository", "NotificationRepository"]
