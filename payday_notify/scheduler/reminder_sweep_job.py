"""Runs every REMINDER_SWEEP_INTERVAL_SECONDS: fire payday reminders whose timer was missed."""
import logging

from payday_notify.scheduler.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


def run_reminder_sweep_job(reminders: ReminderScheduler) -> None:
    try:
        fired = reminders.sweep_due()
        if fired:
            logger.info("Reminder sweep fired %s overdue payday reminders", fired)
    except Exception as e:
        logger.exception("Reminder sweep failed: %s", e)
