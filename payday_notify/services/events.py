"""
Typed in-process publish/subscribe for the 7 notification events.

publish() is fire-and-forget: no acknowledgement, handler errors are logged and never reach
the producer. Publishes of one event type are serialised so handlers see them in publish
order; different types are independent streams with no ordering between them.
"""
import logging
import threading
from collections import defaultdict
from datetime import date
from typing import Callable

from payday_notify.services.delivery import DeliveryDispatcher
from payday_notify.services.notification_store import NotificationStore
from payday_notify.services.payloads import MissedContributionEvent, NotificationEvent
from payday_notify.services.types import Notification, NotificationType

logger = logging.getLogger(__name__)

EventHandler = Callable[[NotificationEvent], object]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[NotificationType, list[EventHandler]] = defaultdict(list)
        self._type_locks: dict[NotificationType, threading.Lock] = {t: threading.Lock() for t in NotificationType}
        self._subscribe_lock = threading.Lock()

    def subscribe(self, event_type: NotificationType, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a function that unsubscribes it."""
        with self._subscribe_lock:
            self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            with self._subscribe_lock:
                if handler in self._handlers[event_type]:
                    self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event: NotificationEvent) -> None:
        event_type = event.type
        with self._subscribe_lock:
            handlers = list(self._handlers[event_type])
        if not handlers:
            logger.debug("No subscribers for %s event", event_type.value)
            return
        with self._type_locks[event_type]:
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.exception("Handler %r failed for %s event: %s", handler, event_type.value, e)


class NotificationEventMapper:
    """Turns each event into NotificationStore.create, then delivers what was created."""

    def __init__(self, store: NotificationStore, dispatcher: DeliveryDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    def attach(self, bus: EventBus) -> None:
        for event_type in NotificationType:
            bus.subscribe(event_type, self.handle)

    def handle(self, event: NotificationEvent) -> Notification | None:
        notification = self.store.create(event)
        if notification is None:
            return None
        self.dispatcher.deliver(notification)
        return notification


def check_missed_contribution(
    bus: EventBus,
    *,
    user_id: str,
    expected_amount: float,
    actual_amount: float,
    currency: str,
    partnership_id: str | None = None,
    month: str | None = None,
) -> bool:
    """Publish a missed-contribution event when the month's contributions fall short. Returns True if published."""
    if actual_amount >= expected_amount:
        return False
    bus.publish(
        MissedContributionEvent(
            user_id=user_id,
            expected_amount=expected_amount,
            actual_amount=actual_amount,
            currency=currency,
            month=month or date.today().strftime("%Y-%m"),
            partnership_id=partnership_id,
        )
    )
    return True
