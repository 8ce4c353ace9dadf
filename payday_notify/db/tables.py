"""
Single source of truth for database tables that exist after migrations (001).

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "user_notifications",
    "notification_preferences",
    "scheduled_reminders",
    "push_tokens",
    "user_profiles",
)

# Tables cleared when resetting notification state (TRUNCATE). Preferences and profiles survive.
NOTIFICATION_TABLE_NAMES = (
    "user_notifications",
    "scheduled_reminders",
)
