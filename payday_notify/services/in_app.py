"""In-app delivery sink: bounded per-user toast feed, drained by the notification-center UI."""
from __future__ import annotations

import threading
from collections import defaultdict, deque
from typing import Any, Deque

from payday_notify.services.notification_templates import ICONS
from payday_notify.services.types import Channel, Notification, Priority

# How long the UI keeps a toast on screen; urgent toasts stay until dismissed
TOAST_DURATION_MS = 8000


class InAppFeed:
    """One bounded queue per user. When full, the oldest toast is dropped."""

    name = Channel.IN_APP

    def __init__(self, maxsize: int = 50) -> None:
        self.maxsize = maxsize
        self._feeds: dict[str, Deque[dict[str, Any]]] = defaultdict(deque)
        self._lock = threading.Lock()

    def send(self, notification: Notification) -> bool:
        if self.maxsize <= 0:
            return False
        icon = ICONS.get(notification.type, "🔔")
        toast = {
            "id": notification.id,
            "type": notification.type.value,
            "text": f"{icon} {notification.title}: {notification.message}",
            "priority": notification.priority.value,
            "sticky": notification.priority == Priority.URGENT,
            "duration_ms": None if notification.priority == Priority.URGENT else TOAST_DURATION_MS,
            "action_url": notification.action_url,
            "created_at": notification.created_at.isoformat(),
        }
        with self._lock:
            feed = self._feeds[notification.user_id]
            if len(feed) >= self.maxsize:
                feed.popleft()
            feed.append(toast)
        return True

    def drain(self, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            feed = self._feeds.pop(user_id, None)
        return list(feed) if feed else []

    def pending(self, user_id: str) -> int:
        with self._lock:
            return len(self._feeds.get(user_id, ()))
