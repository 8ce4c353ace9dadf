"""
Per-type notification templates: title, message, priority, link and id.

Two ids are logical keys, so that two firings for the same notification (timer and backstop
sweep) collapse to one record:
  - payday reminders: the payday itself (one per user per payday)
  - missed contributions: the month (one per user per month)
Every other type gets a fresh id per event (entity id, creation ms and a random suffix), so
distinct events at the same instant never collapse.
"""
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any

from payday_notify.core.constants import PAYDAY_REMINDER_TTL_HOURS
from payday_notify.services.payloads import (
    ApprovalRequestEvent,
    GoalMilestoneEvent,
    MissedContributionEvent,
    NotificationEvent,
    PartnerActivityEvent,
    PaydayReminderEvent,
    SafetyPotAlertEvent,
    StreakAchievementEvent,
)
from payday_notify.services.types import NotificationType, Priority

CURRENCY_SYMBOLS = {"GBP": "£", "USD": "$", "EUR": "€", "JPY": "¥", "INR": "₹", "AUD": "A$", "CAD": "C$"}

ICONS: dict[NotificationType, str] = {
    NotificationType.PAYDAY_REMINDER: "💰",
    NotificationType.PARTNER_ACTIVITY: "👥",
    NotificationType.MISSED_CONTRIBUTION: "⚠️",
    NotificationType.GOAL_MILESTONE: "🎯",
    NotificationType.APPROVAL_REQUEST: "✅",
    NotificationType.SAFETY_POT_ALERT: "🛡️",
    NotificationType.STREAK_ACHIEVEMENT: "🔥",
}

PRIORITIES: dict[NotificationType, Priority] = {
    NotificationType.PAYDAY_REMINDER: Priority.HIGH,
    NotificationType.MISSED_CONTRIBUTION: Priority.HIGH,
    NotificationType.APPROVAL_REQUEST: Priority.HIGH,
    NotificationType.PARTNER_ACTIVITY: Priority.MEDIUM,
    NotificationType.GOAL_MILESTONE: Priority.MEDIUM,
    NotificationType.SAFETY_POT_ALERT: Priority.MEDIUM,
    NotificationType.STREAK_ACHIEVEMENT: Priority.LOW,
}

SAFETY_POT_MESSAGES = {
    "low_balance": "Your safety pot is running low. Consider adding more funds for peace of mind.",
    "high_balance": "Your safety pot is well-funded! Consider redistributing excess funds to goals.",
    "contribution_needed": "Time to contribute to your safety pot to maintain your target coverage.",
}


@dataclass
class RenderedNotification:
    id: str
    title: str
    message: str
    priority: Priority
    action_url: str | None = None
    partnership_id: str | None = None
    related_entity_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_for: datetime | None = None
    expires_at: datetime | None = None


def format_money(amount: float | None, currency: str | None) -> str:
    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} " if code else "")
    return f"{symbol}{(amount or 0):,.2f}"


def _ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _event_id(prefix: str, user_id: str, now: datetime, key: str | None = None) -> str:
    parts = [prefix, user_id] + ([key] if key else []) + [str(_ms(now)), uuid.uuid4().hex[:8]]
    return "_".join(parts)


def _payday_reminder(e: PaydayReminderEvent, now: datetime) -> RenderedNotification:
    payday_start = datetime.combine(e.next_payday, time(), tzinfo=timezone.utc)
    scheduled_for = e.remind_at or payday_start
    return RenderedNotification(
        id=f"payday_{e.user_id}_{_ms(payday_start)}",
        title="💰 Payday Reminder",
        message=(
            f"It's payday! Don't forget to contribute {format_money(e.expected_contribution, e.currency)} "
            "to your shared expenses."
        ),
        priority=PRIORITIES[e.type],
        action_url="/money-hub",
        partnership_id=e.partnership_id,
        metadata={
            "expected_contribution": e.expected_contribution,
            "currency": e.currency,
            "payday": e.payday,
            "next_payday": e.next_payday.isoformat(),
        },
        scheduled_for=scheduled_for,
        expires_at=payday_start + timedelta(hours=PAYDAY_REMINDER_TTL_HOURS),
    )


def _partner_activity(e: PartnerActivityEvent, now: datetime) -> RenderedNotification:
    amount = format_money(e.amount, e.currency)
    activity = {
        "expense_added": f"added a new expense: {e.entity_name} ({amount})",
        "goal_created": f"created a new goal: {e.entity_name}",
        "contribution_made": f"made a contribution of {amount}",
        "milestone_reached": f"reached a milestone: {e.entity_name}",
    }[e.activity_type]
    return RenderedNotification(
        id=_event_id("partner", e.user_id, now, e.partner_id),
        title=f"👥 {e.partner_name} Activity",
        message=f"{e.partner_name} {activity}",
        priority=PRIORITIES[e.type],
        action_url="/partner-hub",
        partnership_id=e.partnership_id,
        related_entity_id=e.entity_id,
        metadata=asdict(e),
    )


def _missed_contribution(e: MissedContributionEvent, now: datetime) -> RenderedNotification:
    shortfall = e.expected_amount - e.actual_amount
    return RenderedNotification(
        id=f"missed_{e.user_id}_{e.month}",
        title="⚠️ Missed Contribution",
        message=(
            f"You're {format_money(shortfall, e.currency)} short on your expected contribution for {e.month}."
        ),
        priority=PRIORITIES[e.type],
        action_url="/money-hub",
        partnership_id=e.partnership_id,
        metadata={**asdict(e), "shortfall": shortfall},
    )


def _goal_milestone(e: GoalMilestoneEvent, now: datetime) -> RenderedNotification:
    if e.milestone_type == "percentage":
        message = f"🎉 You've reached {e.milestone_value:g}% of your {e.goal_name} goal!"
    elif e.milestone_type == "amount":
        message = f"🎉 You've saved {format_money(e.milestone_value, e.currency)} towards {e.goal_name}!"
    else:
        message = f"🏆 Congratulations! You've completed your {e.goal_name} goal!"
    return RenderedNotification(
        id=_event_id("milestone", e.user_id, now, e.goal_id),
        title="🎯 Goal Milestone!",
        message=message,
        priority=PRIORITIES[e.type],
        action_url="/goals-hub",
        partnership_id=e.partnership_id,
        related_entity_id=e.goal_id,
        metadata=asdict(e),
    )


def _approval_request(e: ApprovalRequestEvent, now: datetime) -> RenderedNotification:
    message = f"Your partner needs approval for a {e.request_type}: {e.entity_name}"
    if e.amount and e.currency:
        message += f" ({format_money(e.amount, e.currency)})"
    return RenderedNotification(
        id=_event_id("approval", e.user_id, now, e.entity_id),
        title="✅ Approval Needed",
        message=message,
        priority=PRIORITIES[e.type],
        action_url="/approvals",
        partnership_id=e.partnership_id,
        related_entity_id=e.entity_id,
        metadata=asdict(e),
    )


def _safety_pot_alert(e: SafetyPotAlertEvent, now: datetime) -> RenderedNotification:
    return RenderedNotification(
        id=_event_id("safety", e.user_id, now),
        title="🛡️ Safety Pot Alert",
        message=SAFETY_POT_MESSAGES[e.alert_type],
        priority=PRIORITIES[e.type],
        action_url="/money-hub",
        partnership_id=e.partnership_id,
        metadata={"alert_type": e.alert_type},
    )


def _streak_achievement(e: StreakAchievementEvent, now: datetime) -> RenderedNotification:
    times = "time" if e.streak_count == 1 else "times"
    return RenderedNotification(
        id=_event_id("streak", e.user_id, now),
        title="🔥 Streak Achievement!",
        message=f"Amazing! You've maintained a {e.streak_type} streak for {e.streak_count} {times}!",
        priority=PRIORITIES[e.type],
        action_url="/gamification",
        metadata={"streak_type": e.streak_type, "streak_count": e.streak_count},
    )


_RENDERERS = {
    NotificationType.PAYDAY_REMINDER: _payday_reminder,
    NotificationType.PARTNER_ACTIVITY: _partner_activity,
    NotificationType.MISSED_CONTRIBUTION: _missed_contribution,
    NotificationType.GOAL_MILESTONE: _goal_milestone,
    NotificationType.APPROVAL_REQUEST: _approval_request,
    NotificationType.SAFETY_POT_ALERT: _safety_pot_alert,
    NotificationType.STREAK_ACHIEVEMENT: _streak_achievement,
}


def render(event: NotificationEvent, now: datetime) -> RenderedNotification:
    return _RENDERERS[event.type](event, now)
