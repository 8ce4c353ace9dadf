from payday_notify.models.notify_preference import NotifyPreference
from payday_notify.models.push_token import PushToken
from payday_notify.models.reminder_schedule import ReminderSchedule
from payday_notify.models.user_notification import UserNotification
from payday_notify.models.user_profile import UserProfileRecord

__all__ = [
    "NotifyPreference",
    "PushToken",
    "ReminderSchedule",
    "UserNotification",
    "UserProfileRecord",
]
