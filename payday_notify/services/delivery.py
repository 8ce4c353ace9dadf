"""
Delivery fan-out for a stored notification: in-app feed, APNs push, e-mail.

Quiet hours suppress every channel for the call; the stored record and unread count are not
affected and there is no re-delivery once quiet hours end. Outside quiet hours each enabled
channel runs independently: one failing channel is logged and never blocks the others.

Priority only changes presentation (urgent -> sticky toast / time-sensitive push); it does not
change which channels are attempted.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Protocol

from payday_notify.core.timeutil import get_zone, parse_hhmm, utc_now
from payday_notify.services.notification_store import NotificationStore
from payday_notify.services.push import PushChannel
from payday_notify.services.types import Channel, Notification, QuietHours

logger = logging.getLogger(__name__)


class DeliveryChannel(Protocol):
    name: Channel

    def send(self, notification: Notification) -> bool:
        """True when the channel accepted the notification."""
        ...


@dataclass
class DeliveryReport:
    notification_id: str
    suppressed: bool = False  # quiet hours
    delivered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # disabled by preference, no permission, nothing to send
    failed: list[str] = field(default_factory=list)


def is_in_quiet_hours(quiet_hours: QuietHours, now: datetime) -> bool:
    """
    now (aware) evaluated in quiet_hours.timezone against [start, end).
    start > end is an overnight window (22:00-08:00); start == end is an empty window.
    """
    if not quiet_hours.enabled:
        return False
    try:
        start = parse_hhmm(quiet_hours.start_time)
        end = parse_hhmm(quiet_hours.end_time)
    except ValueError as e:
        logger.warning("Ignoring invalid quiet hours %s: %s", quiet_hours, e)
        return False
    local = now.astimezone(get_zone(quiet_hours.timezone)).time().replace(tzinfo=None)
    if start == end:
        return False
    if start < end:
        return start <= local < end
    return local >= start or local < end


class DeliveryDispatcher:
    def __init__(
        self,
        store: NotificationStore,
        *,
        in_app: DeliveryChannel,
        push: PushChannel,
        email: DeliveryChannel,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.in_app = in_app
        self.push = push
        self.email = email
        self._clock = clock

    def request_push_permission(self, user_id: str) -> bool:
        try:
            return self.push.request_permission(user_id)
        except Exception as e:
            logger.warning("Push permission request failed for %s: %s", user_id, e)
            return False

    def _attempt(self, channel: DeliveryChannel, notification: Notification, report: DeliveryReport) -> None:
        name = channel.name.value
        try:
            ok = channel.send(notification)
        except Exception as e:
            logger.warning("Channel %s failed for notification %s: %s", name, notification.id, e, exc_info=True)
            report.failed.append(name)
            return
        (report.delivered if ok else report.skipped).append(name)

    def deliver(self, notification: Notification) -> DeliveryReport:
        report = DeliveryReport(notification_id=notification.id)
        prefs = self.store.get_preferences(notification.user_id)
        if is_in_quiet_hours(prefs.quiet_hours, self._clock()):
            logger.info("Quiet hours for user %s; suppressing delivery of %s", notification.user_id, notification.id)
            report.suppressed = True
            return report

        if prefs.channel_enabled(Channel.IN_APP):
            self._attempt(self.in_app, notification, report)
        else:
            report.skipped.append(Channel.IN_APP.value)

        if prefs.channel_enabled(Channel.PUSH) and self.push.is_granted(notification.user_id):
            self._attempt(self.push, notification, report)
        else:
            report.skipped.append(Channel.PUSH.value)

        if prefs.channel_enabled(Channel.EMAIL):
            self._attempt(self.email, notification, report)
        else:
            report.skipped.append(Channel.EMAIL.value)

        logger.debug(
            "Delivered %s: ok=%s skipped=%s failed=%s",
            notification.id, report.delivered, report.skipped, report.failed,
        )
        return report
