"""
Persistence port for the notification pipeline, plus the in-memory implementation.

The store, scheduler and dispatcher only talk to this Protocol; swap InMemoryRepository for
SqlAlchemyRepository (sql_repository.py) via settings.storage_backend. Records go in and come
out as pydantic copies, so callers never share mutable state with the repository.
"""
import threading
from datetime import datetime
from typing import Protocol

from payday_notify.services.types import Notification, NotificationPreferences, ScheduledReminder, UserProfile


class NotificationRepository(Protocol):
    """Narrow access pattern required of a storage engine. One contract; only storage differs."""

    # --- notifications ---
    def put_notification(self, notification: Notification) -> None: ...

    def get_notification(self, notification_id: str) -> Notification | None: ...

    def list_notifications(self, user_id: str, limit: int | None = None, unread_only: bool = False) -> list[Notification]:
        """Newest first by created_at."""
        ...

    def delete_notification(self, notification_id: str) -> bool: ...

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        """Set read on every unread record of the user in one step. Returns the number marked."""
        ...

    def count_unread(self, user_id: str) -> int: ...

    # --- preferences ---
    def put_preferences(self, preferences: NotificationPreferences) -> None: ...

    def get_preferences(self, user_id: str) -> NotificationPreferences | None: ...

    # --- reminders ---
    def put_reminder(self, reminder: ScheduledReminder) -> None: ...

    def get_reminder(self, user_id: str) -> ScheduledReminder | None: ...

    def list_reminders(self) -> list[ScheduledReminder]: ...

    def delete_reminder(self, user_id: str) -> bool: ...

    # --- push tokens ---
    def add_push_token(self, user_id: str, device_token: str, platform: str = "ios") -> bool:
        """Upsert. Returns True when the token was new."""
        ...

    def remove_push_token(self, device_token: str) -> bool: ...

    def list_push_tokens(self, user_id: str) -> list[str]: ...

    # --- profiles ---
    def put_profile(self, profile: UserProfile) -> None: ...

    def get_profile(self, user_id: str) -> UserProfile | None: ...


class InMemoryRepository:
    """Process-local storage. Guarded by one RLock: scheduler jobs and request handlers run on threads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._notifications: dict[str, Notification] = {}
        self._preferences: dict[str, NotificationPreferences] = {}
        self._reminders: dict[str, ScheduledReminder] = {}
        self._push_tokens: dict[str, tuple[str, str]] = {}  # token -> (user_id, platform)
        self._profiles: dict[str, UserProfile] = {}

    def put_notification(self, notification: Notification) -> None:
        with self._lock:
            self._notifications[notification.id] = notification.model_copy(deep=True)

    def get_notification(self, notification_id: str) -> Notification | None:
        with self._lock:
            row = self._notifications.get(notification_id)
            return row.model_copy(deep=True) if row else None

    def list_notifications(self, user_id: str, limit: int | None = None, unread_only: bool = False) -> list[Notification]:
        with self._lock:
            rows = [
                n for n in self._notifications.values()
                if n.user_id == user_id and not (unread_only and n.read)
            ]
            rows.sort(key=lambda n: n.created_at, reverse=True)
            if limit is not None:
                rows = rows[:limit]
            return [n.model_copy(deep=True) for n in rows]

    def delete_notification(self, notification_id: str) -> bool:
        with self._lock:
            return self._notifications.pop(notification_id, None) is not None

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        with self._lock:
            marked = 0
            for n in self._notifications.values():
                if n.user_id == user_id and not n.read:
                    n.read = True
                    n.read_at = read_at
                    marked += 1
            return marked

    def count_unread(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._notifications.values() if n.user_id == user_id and not n.read)

    def put_preferences(self, preferences: NotificationPreferences) -> None:
        with self._lock:
            self._preferences[preferences.user_id] = preferences.model_copy(deep=True)

    def get_preferences(self, user_id: str) -> NotificationPreferences | None:
        with self._lock:
            row = self._preferences.get(user_id)
            return row.model_copy(deep=True) if row else None

    def put_reminder(self, reminder: ScheduledReminder) -> None:
        with self._lock:
            self._reminders[reminder.user_id] = reminder.model_copy(deep=True)

    def get_reminder(self, user_id: str) -> ScheduledReminder | None:
        with self._lock:
            row = self._reminders.get(user_id)
            return row.model_copy(deep=True) if row else None

    def list_reminders(self) -> list[ScheduledReminder]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._reminders.values()]

    def delete_reminder(self, user_id: str) -> bool:
        with self._lock:
            return self._reminders.pop(user_id, None) is not None

    def add_push_token(self, user_id: str, device_token: str, platform: str = "ios") -> bool:
        device_token = device_token.strip()
        with self._lock:
            is_new = device_token not in self._push_tokens
            self._push_tokens[device_token] = (user_id, platform)
            return is_new

    def remove_push_token(self, device_token: str) -> bool:
        with self._lock:
            return self._push_tokens.pop(device_token.strip(), None) is not None

    def list_push_tokens(self, user_id: str) -> list[str]:
        with self._lock:
            return [token for token, (owner, _) in self._push_tokens.items() if owner == user_id]

    def put_profile(self, profile: UserProfile) -> None:
        with self._lock:
            self._profiles[profile.user_id] = profile.model_copy(deep=True)

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._lock:
            row = self._profiles.get(user_id)
            return row.model_copy(deep=True) if row else None
