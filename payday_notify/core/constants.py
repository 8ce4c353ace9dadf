"""
Centralized constants for the reminder scheduler and notification pipeline.

Change job IDs, intervals or reminder buckets here instead of scattering literals across
main, the scheduler and routes.
"""

# Scheduler job IDs (must match ids used in main.py add_job)
REMINDER_SWEEP_JOB_ID = "payday_reminder_sweep"
# One date job per user: f"{REMINDER_JOB_PREFIX}{user_id}"
REMINDER_JOB_PREFIX = "payday_reminder:"
REMINDER_SWEEP_INTERVAL_SECONDS = 60
# A reminder whose timer fired late (process busy or paused) still runs within this window
REMINDER_MISFIRE_GRACE_SECONDS = 6 * 60 * 60

# Time-of-day buckets for payday reminders (local time in the reminder's timezone)
REMINDER_TIMES: dict[str, tuple[int, int]] = {
    "morning": (9, 0),
    "afternoon": (14, 0),
    "evening": (18, 0),
}
DEFAULT_REMINDER_TIME = "morning"

# Payday reminder notifications stop being relevant a day after payday
PAYDAY_REMINDER_TTL_HOURS = 24

# Notification listing
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

# Preview of upcoming paydays in the UI
DEFAULT_PREVIEW_COUNT = 3
MAX_PREVIEW_COUNT = 24

# Quiet hours default window (used when a user first touches preferences)
DEFAULT_QUIET_START = "22:00"
DEFAULT_QUIET_END = "08:00"
