"""
SQLAlchemy implementation of the notification persistence port.

Each call runs in its own short session (commit on success, rollback on error) so the
repository can be shared by request handlers and scheduler threads.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker

from payday_notify.core.timeutil import as_utc
from payday_notify.models.notify_preference import NotifyPreference
from payday_notify.models.push_token import PushToken
from payday_notify.models.reminder_schedule import ReminderSchedule
from payday_notify.models.user_notification import UserNotification
from payday_notify.models.user_profile import UserProfileRecord
from payday_notify.services.types import (
    Notification,
    NotificationPreferences,
    QuietHours,
    ReminderConfig,
    ReminderState,
    ScheduledReminder,
    UserProfile,
)


def _notification_from_row(row: UserNotification) -> Notification:
    return Notification(
        id=row.id,
        type=row.type,
        title=row.title,
        message=row.message,
        priority=row.priority,
        user_id=row.user_id,
        partnership_id=row.partnership_id,
        related_entity_id=row.related_entity_id,
        read=row.read_at is not None,
        read_at=as_utc(row.read_at),
        action_url=row.action_url,
        metadata=row.payload or {},
        created_at=as_utc(row.created_at),
        scheduled_for=as_utc(row.scheduled_for),
        expires_at=as_utc(row.expires_at),
    )


def _preferences_from_row(row: NotifyPreference) -> NotificationPreferences:
    return NotificationPreferences(
        user_id=row.user_id,
        payday_reminders=row.payday_reminders,
        partner_activity=row.partner_activity,
        missed_contributions=row.missed_contributions,
        goal_milestones=row.goal_milestones,
        approval_requests=row.approval_requests,
        safety_pot_alerts=row.safety_pot_alerts,
        streak_achievements=row.streak_achievements,
        email_notifications=row.email_notifications,
        push_notifications=row.push_notifications,
        in_app_notifications=row.in_app_notifications,
        quiet_hours=QuietHours(
            enabled=row.quiet_enabled,
            start_time=row.quiet_start,
            end_time=row.quiet_end,
            timezone=row.quiet_timezone,
        ),
        frequency=row.frequency,
        updated_at=as_utc(row.updated_at),
    )


def _reminder_from_row(row: ReminderSchedule) -> ScheduledReminder:
    return ScheduledReminder(
        user_id=row.user_id,
        config=ReminderConfig.model_validate(row.config) if row.config else None,
        state=ReminderState(row.state),
        occurrence=row.occurrence,
        next_fire_at=as_utc(row.next_fire_at),
        last_fired_occurrence=row.last_fired_occurrence,
        job_id=row.job_id,
        updated_at=as_utc(row.updated_at),
    )


class SqlAlchemyRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # --- notifications ---

    def put_notification(self, notification: Notification) -> None:
        with self._session() as db:
            db.merge(
                UserNotification(
                    id=notification.id,
                    user_id=notification.user_id,
                    type=notification.type.value,
                    title=notification.title,
                    message=notification.message,
                    priority=notification.priority.value,
                    partnership_id=notification.partnership_id,
                    related_entity_id=notification.related_entity_id,
                    action_url=notification.action_url,
                    read_at=notification.read_at if notification.read else None,
                    created_at=notification.created_at,
                    scheduled_for=notification.scheduled_for,
                    expires_at=notification.expires_at,
                    payload=notification.metadata,
                )
            )

    def get_notification(self, notification_id: str) -> Notification | None:
        with self._session() as db:
            row = db.get(UserNotification, notification_id)
            return _notification_from_row(row) if row else None

    def list_notifications(self, user_id: str, limit: int | None = None, unread_only: bool = False) -> list[Notification]:
        with self._session() as db:
            q = db.query(UserNotification).filter(UserNotification.user_id == user_id)
            if unread_only:
                q = q.filter(UserNotification.read_at.is_(None))
            q = q.order_by(UserNotification.created_at.desc())
            if limit is not None:
                q = q.limit(limit)
            return [_notification_from_row(r) for r in q.all()]

    def delete_notification(self, notification_id: str) -> bool:
        with self._session() as db:
            deleted = db.query(UserNotification).filter(UserNotification.id == notification_id).delete()
            return deleted > 0

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        with self._session() as db:
            return (
                db.query(UserNotification)
                .filter(UserNotification.user_id == user_id, UserNotification.read_at.is_(None))
                .update({UserNotification.read_at: read_at}, synchronize_session=False)
            )

    def count_unread(self, user_id: str) -> int:
        with self._session() as db:
            return (
                db.query(UserNotification)
                .filter(UserNotification.user_id == user_id, UserNotification.read_at.is_(None))
                .count()
            )

    # --- preferences ---

    def put_preferences(self, preferences: NotificationPreferences) -> None:
        qh = preferences.quiet_hours
        with self._session() as db:
            db.merge(
                NotifyPreference(
                    user_id=preferences.user_id,
                    payday_reminders=preferences.payday_reminders,
                    partner_activity=preferences.partner_activity,
                    missed_contributions=preferences.missed_contributions,
                    goal_milestones=preferences.goal_milestones,
                    approval_requests=preferences.approval_requests,
                    safety_pot_alerts=preferences.safety_pot_alerts,
                    streak_achievements=preferences.streak_achievements,
                    email_notifications=preferences.email_notifications,
                    push_notifications=preferences.push_notifications,
                    in_app_notifications=preferences.in_app_notifications,
                    quiet_enabled=qh.enabled,
                    quiet_start=qh.start_time,
                    quiet_end=qh.end_time,
                    quiet_timezone=qh.timezone,
                    frequency=preferences.frequency,
                    updated_at=preferences.updated_at,
                )
            )

    def get_preferences(self, user_id: str) -> NotificationPreferences | None:
        with self._session() as db:
            row = db.get(NotifyPreference, user_id)
            return _preferences_from_row(row) if row else None

    # --- reminders ---

    def put_reminder(self, reminder: ScheduledReminder) -> None:
        with self._session() as db:
            db.merge(
                ReminderSchedule(
                    user_id=reminder.user_id,
                    config=reminder.config.model_dump(mode="json") if reminder.config else None,
                    state=reminder.state.value,
                    occurrence=reminder.occurrence,
                    next_fire_at=reminder.next_fire_at,
                    last_fired_occurrence=reminder.last_fired_occurrence,
                    job_id=reminder.job_id,
                    updated_at=reminder.updated_at,
                )
            )

    def get_reminder(self, user_id: str) -> ScheduledReminder | None:
        with self._session() as db:
            row = db.get(ReminderSchedule, user_id)
            return _reminder_from_row(row) if row else None

    def list_reminders(self) -> list[ScheduledReminder]:
        with self._session() as db:
            return [_reminder_from_row(r) for r in db.query(ReminderSchedule).all()]

    def delete_reminder(self, user_id: str) -> bool:
        with self._session() as db:
            return db.query(ReminderSchedule).filter(ReminderSchedule.user_id == user_id).delete() > 0

    # --- push tokens ---

    def add_push_token(self, user_id: str, device_token: str, platform: str = "ios") -> bool:
        token_str = device_token.strip()
        with self._session() as db:
            existing = db.query(PushToken).filter(PushToken.device_token == token_str).first()
            if existing:
                existing.user_id = user_id
                existing.platform = platform
                existing.updated_at = datetime.now(timezone.utc)
                return False
            db.add(PushToken(user_id=user_id, device_token=token_str, platform=platform))
            return True

    def remove_push_token(self, device_token: str) -> bool:
        with self._session() as db:
            return db.query(PushToken).filter(PushToken.device_token == device_token.strip()).delete() > 0

    def list_push_tokens(self, user_id: str) -> list[str]:
        with self._session() as db:
            return [r.device_token for r in db.query(PushToken).filter(PushToken.user_id == user_id).all()]

    # --- profiles ---

    def put_profile(self, profile: UserProfile) -> None:
        with self._session() as db:
            db.merge(UserProfileRecord(**profile.model_dump()))

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._session() as db:
            row = db.get(UserProfileRecord, user_id)
            if row is None:
                return None
            return UserProfile(
                user_id=row.user_id,
                email=row.email,
                timezone=row.timezone,
                currency=row.currency,
                payday=row.payday,
                custom_payday=row.custom_payday,
                partnership_id=row.partnership_id,
            )
