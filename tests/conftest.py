"""Pytest fixtures: controllable clock, fake delivery channels, an unstarted scheduler."""
from datetime import datetime, timedelta, timezone

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from payday_notify.config import Settings
from payday_notify.services.container import ServiceContainer, build_services
from payday_notify.services.repository import InMemoryRepository
from payday_notify.services.types import Channel, Notification

# Wednesday, 15 Jan 2025, 10:00 UTC
START = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock; tests move time with advance() or set()."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


class RecordingChannel:
    """Delivery channel that records what it was asked to send."""

    def __init__(self, name: Channel, *, fail: bool = False, result: bool = True) -> None:
        self.name = name
        self.fail = fail
        self.result = result
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> bool:
        if self.fail:
            raise RuntimeError(f"{self.name.value} is down")
        self.sent.append(notification)
        return self.result


class FakePush(RecordingChannel):
    def __init__(self, *, granted: bool = True, fail: bool = False) -> None:
        super().__init__(Channel.PUSH, fail=fail)
        self.granted = granted
        self.permission_requests: list[str] = []

    def request_permission(self, user_id: str) -> bool:
        self.permission_requests.append(user_id)
        return self.granted

    def is_granted(self, user_id: str) -> bool:
        return self.granted


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, storage_backend="memory", email_background=False, default_timezone="UTC")


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def scheduler():
    # Never started: jobs stay pending, so tests drive firing by hand
    sched = BackgroundScheduler(timezone="UTC")
    yield sched
    if sched.running:
        sched.shutdown(wait=False)


@pytest.fixture
def push() -> FakePush:
    return FakePush()


@pytest.fixture
def email() -> RecordingChannel:
    return RecordingChannel(Channel.EMAIL)


@pytest.fixture
def services(test_settings, repository, scheduler, push, email, clock) -> ServiceContainer:
    return build_services(
        test_settings,
        repository=repository,
        scheduler=scheduler,
        push=push,
        email=email,
        clock=clock,
    )
