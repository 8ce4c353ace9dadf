"""
Explicit wiring of the notification pipeline.

build_services() is called once by the FastAPI lifespan (or directly by tests and scripts);
the container lives on app.state and route handlers receive it via Depends(get_services).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from payday_notify.config import Settings
from payday_notify.core.timeutil import utc_now
from payday_notify.scheduler.reminder_scheduler import ReminderScheduler
from payday_notify.services.delivery import DeliveryDispatcher
from payday_notify.services.email_notify import EmailChannel
from payday_notify.services.events import EventBus, NotificationEventMapper
from payday_notify.services.in_app import InAppFeed
from payday_notify.services.notification_store import NotificationStore
from payday_notify.services.push import PushChannel
from payday_notify.services.repository import InMemoryRepository, NotificationRepository

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    repository: NotificationRepository
    store: NotificationStore
    in_app: InAppFeed
    push: PushChannel
    email: EmailChannel
    dispatcher: DeliveryDispatcher
    bus: EventBus
    mapper: NotificationEventMapper
    scheduler: BaseScheduler
    reminders: ReminderScheduler
    email_executor: ThreadPoolExecutor | None = None

    def shutdown(self) -> None:
        """Cancel live reminder timers and stop background workers. Persisted reminders are kept."""
        self.reminders.clear_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self.email_executor is not None:
            # Queued e-mails are still sent before the process exits
            self.email_executor.shutdown(wait=True)


def _default_repository(settings: Settings) -> NotificationRepository:
    if settings.storage_backend == "database":
        from payday_notify.db.session import get_session_factory
        from payday_notify.services.sql_repository import SqlAlchemyRepository

        logger.info("Notification storage: database")
        return SqlAlchemyRepository(get_session_factory())
    logger.info("Notification storage: in-memory")
    return InMemoryRepository()


def build_services(
    settings: Settings,
    *,
    repository: NotificationRepository | None = None,
    scheduler: BaseScheduler | None = None,
    push: PushChannel | None = None,
    email: EmailChannel | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> ServiceContainer:
    """Build the pipeline. The scheduler is returned unstarted; the caller decides when to start it."""
    repository = repository if repository is not None else _default_repository(settings)
    scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone="UTC")

    store = NotificationStore(repository, default_timezone=settings.default_timezone, clock=clock)
    in_app = InAppFeed(maxsize=settings.in_app_feed_size)
    push = push if push is not None else PushChannel(repository)
    email_executor = None
    if email is None:
        if settings.email_background:
            email_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="notify-email")
        email = EmailChannel(repository, executor=email_executor)
    dispatcher = DeliveryDispatcher(store, in_app=in_app, push=push, email=email, clock=clock)

    bus = EventBus()
    mapper = NotificationEventMapper(store, dispatcher)
    mapper.attach(bus)

    reminders = ReminderScheduler(scheduler, repository, mapper, clock=clock)
    return ServiceContainer(
        settings=settings,
        repository=repository,
        store=store,
        in_app=in_app,
        push=push,
        email=email,
        dispatcher=dispatcher,
        bus=bus,
        mapper=mapper,
        scheduler=scheduler,
        reminders=reminders,
        email_executor=email_executor,
    )
