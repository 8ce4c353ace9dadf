"""Typed event payloads, one per notification type.

Producers (reminder scheduler, partner feed, goal tracker, contribution checker, approval
workflow, safety-pot monitor, streak tracker) publish these; the mapping layer turns each into
a NotificationStore.create call. `user_id` is always the recipient.
"""
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, ClassVar, Literal

from pydantic import TypeAdapter, ValidationError

from payday_notify.core.errors import InvalidEventError
from payday_notify.services.types import NotificationType


@dataclass(frozen=True)
class PaydayReminderEvent:
    type: ClassVar[NotificationType] = NotificationType.PAYDAY_REMINDER

    user_id: str
    payday: str
    next_payday: date
    expected_contribution: float
    currency: str
    partnership_id: str | None = None
    remind_at: datetime | None = None


@dataclass(frozen=True)
class PartnerActivityEvent:
    type: ClassVar[NotificationType] = NotificationType.PARTNER_ACTIVITY

    user_id: str
    partner_id: str
    partner_name: str
    activity_type: Literal["expense_added", "goal_created", "contribution_made", "milestone_reached"]
    currency: str
    partnership_id: str
    amount: float | None = None
    entity_name: str | None = None
    entity_id: str | None = None


@dataclass(frozen=True)
class MissedContributionEvent:
    type: ClassVar[NotificationType] = NotificationType.MISSED_CONTRIBUTION

    user_id: str
    expected_amount: float
    actual_amount: float
    currency: str
    month: str  # YYYY-MM
    partnership_id: str | None = None


@dataclass(frozen=True)
class GoalMilestoneEvent:
    type: ClassVar[NotificationType] = NotificationType.GOAL_MILESTONE

    user_id: str
    goal_id: str
    goal_name: str
    milestone_type: Literal["percentage", "amount", "completed"]
    milestone_value: float
    current_amount: float
    target_amount: float
    currency: str
    partnership_id: str | None = None


@dataclass(frozen=True)
class ApprovalRequestEvent:
    type: ClassVar[NotificationType] = NotificationType.APPROVAL_REQUEST

    user_id: str
    partnership_id: str
    request_type: Literal["expense", "goal"]
    entity_name: str
    amount: float | None = None
    currency: str | None = None
    entity_id: str | None = None


@dataclass(frozen=True)
class SafetyPotAlertEvent:
    type: ClassVar[NotificationType] = NotificationType.SAFETY_POT_ALERT

    user_id: str
    partnership_id: str
    alert_type: Literal["low_balance", "high_balance", "contribution_needed"]


@dataclass(frozen=True)
class StreakAchievementEvent:
    type: ClassVar[NotificationType] = NotificationType.STREAK_ACHIEVEMENT

    user_id: str
    streak_type: Literal["monthly", "goal", "mixed"]
    streak_count: int


NotificationEvent = (
    PaydayReminderEvent
    | PartnerActivityEvent
    | MissedContributionEvent
    | GoalMilestoneEvent
    | ApprovalRequestEvent
    | SafetyPotAlertEvent
    | StreakAchievementEvent
)

EVENT_CLASSES: dict[NotificationType, type] = {
    cls.type: cls
    for cls in (
        PaydayReminderEvent,
        PartnerActivityEvent,
        MissedContributionEvent,
        GoalMilestoneEvent,
        ApprovalRequestEvent,
        SafetyPotAlertEvent,
        StreakAchievementEvent,
    )
}


def event_from_dict(notification_type: NotificationType | str, data: dict[str, Any]) -> NotificationEvent:
    """Build a typed event from a JSON body. Raises InvalidEventError on unknown type or bad fields."""
    try:
        ntype = NotificationType(notification_type)
    except ValueError:
        raise InvalidEventError(f"Unknown event type {notification_type!r}") from None
    cls = EVENT_CLASSES[ntype]
    try:
        return TypeAdapter(cls).validate_python(data)
    except ValidationError as e:
        raise InvalidEventError(f"Invalid {ntype.value} payload: {e.errors(include_url=False)}") from e


def event_to_dict(event: NotificationEvent) -> dict[str, Any]:
    return asdict(event)
