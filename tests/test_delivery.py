"""Tests for delivery: quiet hours, channel fan-out and isolation, channel implementations."""
from concurrent.futures import ThreadPoolExecutor
import threading
from datetime import datetime, timezone

import pytest

from payday_notify.config import Settings
from payday_notify.services.container import build_services
from payday_notify.services.delivery import is_in_quiet_hours
from payday_notify.services.email_notify import EmailChannel, send_notification_email
from payday_notify.services.in_app import InAppFeed
from payday_notify.services.payloads import StreakAchievementEvent
from payday_notify.services.push import PushChannel
from payday_notify.services.types import Notification, NotificationType, Priority, QuietHours, UserProfile


def _notification(priority: Priority = Priority.MEDIUM, user_id: str = "u1", nid: str = "n1") -> Notification:
    return Notification(
        id=nid,
        type=NotificationType.APPROVAL_REQUEST,
        title="✅ Approval Needed",
        message="Your partner needs approval for a expense: Sofa",
        priority=priority,
        user_id=user_id,
        action_url="/approvals",
        created_at=datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc),
    )


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 15, hour, minute, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Quiet hours
# ---------------------------------------------------------------------------


def test_overnight_quiet_hours_late_evening() -> None:
    qh = QuietHours(enabled=True, start_time="22:00", end_time="08:00")
    assert is_in_quiet_hours(qh, _at(23, 30)) is True


@pytest.mark.parametrize(
    "hour,minute,expected",
    [(21, 59, False), (22, 0, True), (2, 0, True), (7, 59, True), (8, 0, False), (12, 0, False)],
)
def test_overnight_window_boundaries(hour, minute, expected) -> None:
    qh = QuietHours(enabled=True, start_time="22:00", end_time="08:00")
    assert is_in_quiet_hours(qh, _at(hour, minute)) is expected


def test_same_day_window() -> None:
    qh = QuietHours(enabled=True, start_time="13:00", end_time="14:00")
    assert is_in_quiet_hours(qh, _at(13, 30)) is True
    assert is_in_quiet_hours(qh, _at(14, 0)) is False


def test_equal_start_and_end_is_empty_window() -> None:
    qh = QuietHours(enabled=True, start_time="09:00", end_time="09:00")
    assert is_in_quiet_hours(qh, _at(9, 0)) is False


def test_disabled_quiet_hours_never_match() -> None:
    qh = QuietHours(enabled=False, start_time="00:00", end_time="23:59")
    assert is_in_quiet_hours(qh, _at(12, 0)) is False


def test_quiet_hours_use_their_own_timezone() -> None:
    qh = QuietHours(enabled=True, start_time="22:00", end_time="08:00", timezone="America/New_York")
    # 03:30 UTC is 22:30 in New York (EST)
    assert is_in_quiet_hours(qh, _at(3, 30)) is True
    # 14:00 UTC is 09:00 in New York
    assert is_in_quiet_hours(qh, _at(14, 0)) is False


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def _create(services, count: int = 1):
    return services.store.create(StreakAchievementEvent(user_id="u1", streak_type="monthly", streak_count=count))


def test_delivers_to_every_enabled_channel(services, push, email) -> None:
    n = _create(services)
    report = services.dispatcher.deliver(n)
    assert report.suppressed is False
    assert report.delivered == ["in_app", "push", "email"]
    assert services.in_app.pending("u1") == 1
    assert [x.id for x in push.sent] == [n.id]
    assert [x.id for x in email.sent] == [n.id]


def test_quiet_hours_suppress_all_channels_but_keep_record(services, clock, push, email) -> None:
    services.store.update_preferences("u1", {"quiet_hours": {"enabled": True, "start_time": "22:00", "end_time": "08:00"}})
    clock.set(_at(23, 30))
    n = _create(services)
    report = services.dispatcher.deliver(n)
    assert report.suppressed is True
    assert services.in_app.pending("u1") == 0
    assert push.sent == [] and email.sent == []
    assert [x.id for x in services.store.list("u1")] == [n.id]
    assert services.store.unread_count("u1") == 1


def test_failing_channel_does_not_block_others(services, push, email) -> None:
    push.fail = True
    n = _create(services)
    report = services.dispatcher.deliver(n)
    assert report.failed == ["push"]
    assert report.delivered == ["in_app", "email"]
    assert [x.id for x in email.sent] == [n.id]
    assert services.store.get(n.id).read is False


def test_push_without_permission_is_silent(services, push) -> None:
    push.granted = False
    report = services.dispatcher.deliver(_create(services))
    assert "push" in report.skipped
    assert push.sent == []
    assert report.failed == []


def test_disabled_channel_is_skipped(services, email) -> None:
    services.store.update_preferences("u1", {"email_notifications": False, "in_app_notifications": False})
    report = services.dispatcher.deliver(_create(services))
    assert report.delivered == ["push"]
    assert set(report.skipped) == {"in_app", "email"}
    assert email.sent == []
    assert services.in_app.pending("u1") == 0


def test_request_push_permission_never_raises(services, push, monkeypatch) -> None:
    assert services.dispatcher.request_push_permission("u1") is True

    def boom(user_id):
        raise RuntimeError("permission prompt crashed")

    monkeypatch.setattr(push, "request_permission", boom)
    assert services.dispatcher.request_push_permission("u1") is False


# ---------------------------------------------------------------------------
# In-app feed
# ---------------------------------------------------------------------------


def test_in_app_toast_presentation() -> None:
    feed = InAppFeed(maxsize=10)
    feed.send(_notification(Priority.URGENT, nid="urgent"))
    feed.send(_notification(Priority.MEDIUM, nid="normal"))
    urgent, normal = feed.drain("u1")
    assert urgent["sticky"] is True and urgent["duration_ms"] is None
    assert normal["sticky"] is False and normal["duration_ms"] == 8000
    assert normal["text"] == "✅ ✅ Approval Needed: Your partner needs approval for a expense: Sofa"
    assert feed.drain("u1") == []


def test_in_app_feed_drops_oldest_when_full() -> None:
    feed = InAppFeed(maxsize=2)
    for i in range(3):
        feed.send(_notification(nid=f"n{i}"))
    assert [t["id"] for t in feed.drain("u1")] == ["n1", "n2"]


# ---------------------------------------------------------------------------
# Push channel
# ---------------------------------------------------------------------------


class _Sender:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls = []

    def __call__(self, token, title, body, **kwargs) -> bool:
        self.calls.append((token, title, body, kwargs))
        return self.ok


def test_push_permission_needs_config_and_device(repository) -> None:
    unconfigured = PushChannel(repository, sender=_Sender(), configured=lambda: False)
    configured = PushChannel(repository, sender=_Sender(), configured=lambda: True)
    assert configured.request_permission("u1") is False
    repository.add_push_token("u1", "tok-1")
    assert configured.request_permission("u1") is True
    assert configured.is_granted("u1") is True
    assert unconfigured.request_permission("u1") is False


def test_push_sends_to_every_device_with_urgency(repository) -> None:
    sender = _Sender()
    channel = PushChannel(repository, sender=sender, configured=lambda: True)
    repository.add_push_token("u1", "tok-1")
    repository.add_push_token("u1", "tok-2")
    repository.add_push_token("u2", "tok-3")
    assert channel.send(_notification(Priority.URGENT)) is True
    assert sorted(c[0] for c in sender.calls) == ["tok-1", "tok-2"]
    assert all(c[3]["urgent"] is True and c[3]["collapse_id"] == "n1" for c in sender.calls)


def test_push_reports_false_when_nothing_sent(repository) -> None:
    channel = PushChannel(repository, sender=_Sender(ok=False), configured=lambda: True)
    repository.add_push_token("u1", "tok-1")
    assert channel.send(_notification()) is False


# ---------------------------------------------------------------------------
# E-mail channel
# ---------------------------------------------------------------------------


def test_email_uses_profile_address(repository) -> None:
    sent = []
    channel = EmailChannel(repository, sender=lambda to, n: sent.append((to, n.id)) or True)
    assert channel.send(_notification()) is False
    repository.put_profile(UserProfile(user_id="u1", email=" alice@example.com "))
    assert channel.send(_notification()) is True
    assert sent == [("alice@example.com", "n1")]


def test_email_in_background_logs_failures(repository) -> None:
    def failing_sender(to, n):
        raise OSError("smtp down")

    repository.put_profile(UserProfile(user_id="u1", email="alice@example.com"))
    executor = ThreadPoolExecutor(max_workers=1)
    channel = EmailChannel(repository, sender=failing_sender, executor=executor)
    assert channel.send(_notification()) is True
    executor.shutdown(wait=True)


def test_shutdown_sends_queued_background_emails(test_settings, repository, scheduler, push, clock) -> None:
    settings = test_settings.model_copy(update={"email_background": True})
    services = build_services(settings, repository=repository, scheduler=scheduler, push=push, clock=clock)
    sent = []

    def slow_sender(to, n):
        threading.Event().wait(0.05)
        sent.append(n.id)
        return True

    services.email._sender = slow_sender
    repository.put_profile(UserProfile(user_id="u1", email="alice@example.com"))
    for i in range(5):
        assert services.email.send(_notification(nid=f"n{i}")) is True
    services.shutdown()
    assert sorted(sent) == [f"n{i}" for i in range(5)]


def test_send_email_skips_without_smtp_credentials() -> None:
    cfg = Settings(_env_file=None, smtp_user="", smtp_password="")
    assert send_notification_email("alice@example.com", _notification(), cfg=cfg) is False
    assert send_notification_email("", _notification(), cfg=cfg) is False
