"""
Recurring payday reminders: one APScheduler date job per user, re-armed after every firing.

Per user: idle -> scheduled -> fired -> scheduled (loop); clear() moves to cancelled.
schedule() always replaces the user's pending job, so at most one timer per user is live and
concurrent calls are last-writer-wins.

Each reminder is also persisted (next fire time, occurrence, last fired occurrence) so that
restore() can re-arm timers after a restart and sweep_due() can fire anything a timer missed.
A firing is keyed to its occurrence: the timer and the sweep cannot both remind for the same
payday (last_fired_occurrence marker, plus the notification id derived from the payday).
"""
import logging
import threading
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from payday_notify.core.constants import (
    DEFAULT_REMINDER_TIME,
    REMINDER_JOB_PREFIX,
    REMINDER_MISFIRE_GRACE_SECONDS,
    REMINDER_TIMES,
)
from payday_notify.core.timeutil import as_utc, get_zone, utc_now
from payday_notify.services.events import NotificationEventMapper
from payday_notify.services.payday import is_today, next_occurrence, parse_payday_spec
from payday_notify.services.payloads import PaydayReminderEvent
from payday_notify.services.repository import NotificationRepository
from payday_notify.services.types import (
    Notification,
    ReminderConfig,
    ReminderState,
    ScheduledReminder,
    UserProfile,
)

logger = logging.getLogger(__name__)


def reminder_job_id(user_id: str) -> str:
    return f"{REMINDER_JOB_PREFIX}{user_id}"


class ReminderScheduler:
    def __init__(
        self,
        scheduler: BaseScheduler,
        repository: NotificationRepository,
        mapper: NotificationEventMapper,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._scheduler = scheduler
        self.repository = repository
        self.mapper = mapper
        self._clock = clock
        # Re-entrant: fire() re-arms through schedule() while holding the user's lock
        self._locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks[user_id]

    def _cancel_job(self, user_id: str) -> bool:
        try:
            self._scheduler.remove_job(reminder_job_id(user_id))
            return True
        except JobLookupError:
            return False

    # --- timing ---

    def compute_fire_time(self, config: ReminderConfig, *, after: date | None = None) -> tuple[date, datetime]:
        """
        (occurrence, fire instant) for the next reminder. The instant is the occurrence at the
        config's time-of-day bucket in the config's timezone. If that instant is not strictly in
        the future, the following occurrence is used. `after` excludes occurrences on or before it.
        """
        tz = get_zone(config.timezone)
        now_local = self._clock().astimezone(tz)
        spec = parse_payday_spec(config.payday, config.custom_date)
        ref = now_local.date()
        if after is not None and after >= ref:
            ref = after + timedelta(days=1)
        hour, minute = REMINDER_TIMES.get(config.reminder_time, REMINDER_TIMES[DEFAULT_REMINDER_TIME])
        occurrence = next_occurrence(spec, ref)
        fire_at = datetime.combine(occurrence, time(hour, minute), tzinfo=tz)
        if fire_at <= now_local:
            occurrence = next_occurrence(spec, occurrence + timedelta(days=1))
            fire_at = datetime.combine(occurrence, time(hour, minute), tzinfo=tz)
        return occurrence, fire_at

    # --- lifecycle ---

    def schedule(self, config: ReminderConfig, *, after: date | None = None) -> ScheduledReminder | None:
        """
        Arm (or re-arm) the user's reminder, replacing any pending one.
        On failure the error is logged, the user is left idle and None is returned; there is no
        automatic retry until the next explicit schedule().
        """
        user_id = config.user_id
        with self._user_lock(user_id):
            self._cancel_job(user_id)
            previous = self.repository.get_reminder(user_id)
            last_fired = previous.last_fired_occurrence if previous else None
            if after is None:
                after = last_fired
            try:
                occurrence, fire_at = self.compute_fire_time(config, after=after)
                job_id = reminder_job_id(user_id)
                self._scheduler.add_job(
                    self.fire,
                    trigger="date",
                    run_date=fire_at,
                    args=[user_id, occurrence],
                    id=job_id,
                    replace_existing=True,
                    misfire_grace_time=REMINDER_MISFIRE_GRACE_SECONDS,
                )
            except Exception as e:
                logger.exception("Failed to schedule payday reminder for %s: %s", user_id, e)
                self.repository.put_reminder(
                    ScheduledReminder(
                        user_id=user_id,
                        config=config,
                        state=ReminderState.IDLE,
                        last_fired_occurrence=last_fired,
                        updated_at=self._clock(),
                    )
                )
                return None
            reminder = ScheduledReminder(
                user_id=user_id,
                config=config,
                state=ReminderState.SCHEDULED,
                occurrence=occurrence,
                next_fire_at=fire_at.astimezone(timezone.utc),
                last_fired_occurrence=last_fired,
                job_id=job_id,
                updated_at=self._clock(),
            )
            self.repository.put_reminder(reminder)
        logger.info("Payday reminder scheduled for %s at %s (payday %s)", user_id, fire_at.isoformat(), occurrence)
        return reminder

    def fire(self, user_id: str, occurrence: date | None = None) -> Notification | None:
        """
        Timer/sweep callback: create and deliver the payday reminder, then arm the next cycle.
        `occurrence` is the payday the caller expects to fire; a stale call (reminder since
        rescheduled or cancelled, or occurrence already fired) does nothing.
        """
        with self._user_lock(user_id):
            reminder = self.repository.get_reminder(user_id)
            if reminder is None or reminder.state != ReminderState.SCHEDULED or reminder.occurrence is None:
                logger.info("No scheduled payday reminder for %s; nothing to fire", user_id)
                return None
            if occurrence is not None and occurrence != reminder.occurrence:
                logger.info("Stale payday reminder firing for %s (%s != %s); ignoring", user_id, occurrence, reminder.occurrence)
                return None
            occurrence = reminder.occurrence
            config = reminder.config
            if reminder.last_fired_occurrence == occurrence:
                logger.info("Payday reminder for %s on %s already fired; skipping", user_id, occurrence)
                return None
            notification = None
            try:
                notification = self.mapper.handle(
                    PaydayReminderEvent(
                        user_id=user_id,
                        payday=config.payday,
                        next_payday=occurrence,
                        expected_contribution=config.expected_contribution,
                        currency=config.currency,
                        partnership_id=config.partnership_id,
                        remind_at=as_utc(reminder.next_fire_at),
                    )
                )
            except Exception as e:
                logger.exception("Payday reminder for %s on %s failed: %s", user_id, occurrence, e)
            reminder.state = ReminderState.FIRED
            reminder.last_fired_occurrence = occurrence
            reminder.job_id = None
            reminder.updated_at = self._clock()
            self.repository.put_reminder(reminder)
            logger.info("Payday reminder fired for %s (payday %s)", user_id, occurrence)
            # Recurring by construction: next cycle strictly after the payday just fired
            self.schedule(config, after=occurrence)
        return notification

    def clear(self, user_id: str) -> bool:
        """Cancel the user's pending reminder. Returns True if one was scheduled."""
        with self._user_lock(user_id):
            had_job = self._cancel_job(user_id)
            reminder = self.repository.get_reminder(user_id)
            if reminder is None:
                self.repository.put_reminder(
                    ScheduledReminder(user_id=user_id, state=ReminderState.CANCELLED, updated_at=self._clock())
                )
                logger.info("Payday reminder cancelled for %s before one was scheduled", user_id)
                return had_job
            was_scheduled = reminder.state == ReminderState.SCHEDULED
            reminder.state = ReminderState.CANCELLED
            reminder.next_fire_at = None
            reminder.job_id = None
            reminder.updated_at = self._clock()
            self.repository.put_reminder(reminder)
        logger.info("Payday reminder cleared for %s", user_id)
        return had_job or was_scheduled

    def clear_all(self) -> int:
        """Cancel every pending timer (shutdown). Persisted reminders stay scheduled for restore()."""
        cleared = 0
        for user_id in self.scheduled_user_ids():
            with self._user_lock(user_id):
                if self._cancel_job(user_id):
                    cleared += 1
        logger.info("Cleared %s payday reminder timers", cleared)
        return cleared

    def restore(self) -> int:
        """
        Re-arm persisted reminders after a restart. A reminder that came due while the process
        was down and was never fired fires once now (then re-arms itself).
        """
        restored = 0
        now = self._clock()
        for reminder in self.repository.list_reminders():
            if reminder.state not in (ReminderState.SCHEDULED, ReminderState.FIRED):
                continue
            due = reminder.next_fire_at is not None and as_utc(reminder.next_fire_at) <= now
            if reminder.state == ReminderState.SCHEDULED and due and reminder.last_fired_occurrence != reminder.occurrence:
                self.fire(reminder.user_id, reminder.occurrence)
            else:
                self.schedule(reminder.config)
            restored += 1
        logger.info("Restored %s payday reminders", restored)
        return restored

    def sweep_due(self) -> int:
        """Backstop: fire scheduled reminders whose time has passed but whose payday was not fired yet."""
        now = self._clock()
        fired = 0
        for reminder in self.repository.list_reminders():
            if reminder.state != ReminderState.SCHEDULED or reminder.next_fire_at is None:
                continue
            if as_utc(reminder.next_fire_at) > now or reminder.last_fired_occurrence == reminder.occurrence:
                continue
            logger.warning("Sweep found overdue payday reminder for %s (due %s)", reminder.user_id, reminder.next_fire_at)
            self.fire(reminder.user_id, reminder.occurrence)
            fired += 1
        return fired

    # --- queries ---

    def get(self, user_id: str) -> ScheduledReminder | None:
        return self.repository.get_reminder(user_id)

    def state(self, user_id: str) -> ReminderState:
        reminder = self.repository.get_reminder(user_id)
        return reminder.state if reminder else ReminderState.IDLE

    def scheduled_user_ids(self) -> list[str]:
        return [
            job.id[len(REMINDER_JOB_PREFIX):]
            for job in self._scheduler.get_jobs()
            if job.id.startswith(REMINDER_JOB_PREFIX)
        ]

    def should_receive_reminder_today(self, user_id: str) -> bool:
        reminder = self.repository.get_reminder(user_id)
        if reminder is None or reminder.config is None or reminder.state == ReminderState.CANCELLED:
            return False
        config = reminder.config
        today = self._clock().astimezone(get_zone(config.timezone)).date()
        return is_today(parse_payday_spec(config.payday, config.custom_date), today)

    def setup_payday_reminders(
        self,
        profile: UserProfile,
        expected_contribution: float,
        reminder_time: str = DEFAULT_REMINDER_TIME,
    ) -> ScheduledReminder | None:
        """Schedule from a stored profile. Profiles without a payday get no reminder."""
        if not profile.payday:
            return None
        config = ReminderConfig(
            user_id=profile.user_id,
            payday=profile.payday,
            custom_date=profile.custom_payday,
            expected_contribution=expected_contribution,
            currency=profile.currency,
            partnership_id=profile.partnership_id,
            reminder_time=reminder_time,
            timezone=profile.timezone,
        )
        return self.schedule(config)
