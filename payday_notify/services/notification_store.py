"""
Notification ledger and per-user preferences.

Category gating happens at creation: if the owner's preference for a category is off, no
record is written at all (never "created but hidden"). Toggling a preference later does not
touch records that already exist.

Mutations for one user are serialised through a per-user lock, since reminder jobs and
request handlers run on different threads.
"""
import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from payday_notify.core.constants import DEFAULT_LIST_LIMIT
from payday_notify.core.errors import InvalidPreferencesError, NotificationNotFoundError
from payday_notify.core.timeutil import utc_now
from payday_notify.services.notification_templates import render
from payday_notify.services.payloads import NotificationEvent
from payday_notify.services.repository import NotificationRepository
from payday_notify.services.types import Notification, NotificationPreferences

logger = logging.getLogger(__name__)

# Fields a partial preference update may not touch
_READONLY_PREFERENCE_FIELDS = {"user_id", "updated_at"}


class NotificationStore:
    def __init__(
        self,
        repository: NotificationRepository,
        *,
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.default_timezone = default_timezone
        self._clock = clock
        self._locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[user_id]

    # --- ledger ---

    def create(self, event: NotificationEvent) -> Notification | None:
        """
        Create the notification for a typed event. Returns None (and writes nothing) when the
        owner disabled the event's category, or when a record with the same derived id exists.
        """
        user_id = event.user_id
        prefs = self.get_preferences(user_id)
        if not prefs.category_enabled(event.type):
            logger.debug("Category %s disabled for user %s; not creating", event.type.value, user_id)
            return None
        now = self._clock()
        rendered = render(event, now)
        with self._user_lock(user_id):
            if self.repository.get_notification(rendered.id) is not None:
                logger.info("Notification %s already exists; duplicate firing collapsed", rendered.id)
                return None
            notification = Notification(
                id=rendered.id,
                type=event.type,
                title=rendered.title,
                message=rendered.message,
                priority=rendered.priority,
                user_id=user_id,
                partnership_id=rendered.partnership_id,
                related_entity_id=rendered.related_entity_id,
                action_url=rendered.action_url,
                metadata=rendered.metadata,
                created_at=now,
                scheduled_for=rendered.scheduled_for,
                expires_at=rendered.expires_at,
            )
            self.repository.put_notification(notification)
        logger.info("Created %s notification %s for user %s", event.type.value, notification.id, user_id)
        return notification

    def list(self, user_id: str, limit: int = DEFAULT_LIST_LIMIT, unread_only: bool = False) -> list[Notification]:
        """Newest first, truncated to limit. Each call re-scans the ledger."""
        return self.repository.list_notifications(user_id, limit=limit, unread_only=unread_only)

    def get(self, notification_id: str) -> Notification:
        notification = self.repository.get_notification(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def mark_read(self, notification_id: str) -> Notification:
        """Read flag only moves false -> true; marking a read notification again is a no-op."""
        notification = self.get(notification_id)
        with self._user_lock(notification.user_id):
            notification = self.get(notification_id)
            if not notification.read:
                notification.read = True
                notification.read_at = self._clock()
                self.repository.put_notification(notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        with self._user_lock(user_id):
            marked = self.repository.mark_all_read(user_id, self._clock())
        logger.debug("Marked %s notifications read for user %s", marked, user_id)
        return marked

    def delete(self, notification_id: str) -> bool:
        notification = self.repository.get_notification(notification_id)
        if notification is None:
            return False
        with self._user_lock(notification.user_id):
            return self.repository.delete_notification(notification_id)

    def unread_count(self, user_id: str) -> int:
        return self.repository.count_unread(user_id)

    # --- preferences ---

    def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Stored preferences, or the all-enabled default (persisted on first touch)."""
        try:
            prefs = self.repository.get_preferences(user_id)
        except Exception as e:
            # A load failure must never silently suppress a whole category
            logger.warning("Could not load preferences for %s (using defaults): %s", user_id, e)
            return NotificationPreferences.default(user_id, timezone=self.default_timezone)
        if prefs is not None:
            return prefs
        prefs = NotificationPreferences.default(user_id, timezone=self.default_timezone)
        self.repository.put_preferences(prefs)
        return prefs

    def update_preferences(self, user_id: str, partial: dict[str, Any]) -> NotificationPreferences:
        """
        Merge a partial update (quiet_hours merged key by key) and refresh updated_at.
        Raises InvalidPreferencesError on unknown keys or invalid values; nothing is saved then.
        """
        unknown = set(partial) - set(NotificationPreferences.model_fields)
        readonly = set(partial) & _READONLY_PREFERENCE_FIELDS
        if unknown or readonly:
            raise InvalidPreferencesError(f"Cannot update preference fields: {sorted(unknown | readonly)}")
        with self._user_lock(user_id):
            current = self.get_preferences(user_id)
            merged = current.model_dump()
            for key, value in partial.items():
                if key == "quiet_hours" and isinstance(value, dict):
                    merged["quiet_hours"] = {**merged["quiet_hours"], **value}
                else:
                    merged[key] = value
            merged["updated_at"] = self._clock()
            try:
                updated = NotificationPreferences.model_validate(merged)
            except ValidationError as e:
                raise InvalidPreferencesError(str(e)) from e
            self.repository.put_preferences(updated)
        logger.info("Updated notification preferences for user %s: %s", user_id, sorted(partial))
        return updated
