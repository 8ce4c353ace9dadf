"""
Payday reminders API: schedule / inspect / clear the user's reminder, preview upcoming paydays,
and store the profile the reminder and e-mail channel read from.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from payday_notify.api.deps import current_user_id, get_services
from payday_notify.core.constants import DEFAULT_PREVIEW_COUNT, DEFAULT_REMINDER_TIME, MAX_PREVIEW_COUNT
from payday_notify.core.errors import ReminderNotScheduledError, domain_error_to_http
from payday_notify.services.container import ServiceContainer
from payday_notify.services.payday import (
    PAYDAY_OPTIONS,
    days_until,
    describe_next_payday,
    parse_payday_spec,
    payday_explanation,
    spec_label,
    upcoming_occurrences,
    validate_payday_option,
)
from payday_notify.services.types import ReminderConfig, ReminderTime, ScheduledReminder, UserProfile

router = APIRouter()
logger = logging.getLogger(__name__)


def _check_payday(payday: str | None) -> None:
    ok, error = validate_payday_option(payday)
    if not ok:
        raise HTTPException(status_code=422, detail=error)


def _reminder_out(services: ServiceContainer, reminder: ScheduledReminder | None, user_id: str) -> dict[str, Any]:
    if reminder is None:
        return {"user_id": user_id, "state": "idle", "reminder": None, "payday_today": False}
    return {
        "user_id": user_id,
        "state": reminder.state.value,
        "reminder": reminder.model_dump(mode="json"),
        "payday_today": services.reminders.should_receive_reminder_today(user_id),
    }


# --- Reminders ---


class ScheduleReminderBody(BaseModel):
    payday: str = Field(..., description="'1'..'31', 'last-friday', 'last-working-day', 'custom' or 'DD-MM'")
    custom_date: str | None = Field(None, description="'DD' or 'DD-MM' when payday is 'custom'")
    expected_contribution: float = Field(0.0, ge=0)
    currency: str | None = None
    partnership_id: str | None = None
    reminder_time: ReminderTime = DEFAULT_REMINDER_TIME
    timezone: str | None = None


@router.post("/reminders")
def schedule_reminder(
    body: ScheduleReminderBody,
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Arm (or replace) the user's recurring payday reminder."""
    _check_payday(body.payday)
    config = ReminderConfig(
        user_id=user_id,
        payday=body.payday,
        custom_date=body.custom_date,
        expected_contribution=body.expected_contribution,
        currency=body.currency or services.settings.default_currency,
        partnership_id=body.partnership_id,
        reminder_time=body.reminder_time,
        timezone=body.timezone or services.settings.default_timezone,
    )
    reminder = services.reminders.schedule(config)
    if reminder is None:
        raise HTTPException(status_code=500, detail="Could not schedule payday reminder")
    return _reminder_out(services, reminder, user_id)


@router.get("/reminders")
def get_reminder(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    return _reminder_out(services, services.reminders.get(user_id), user_id)


@router.delete("/reminders")
def clear_reminder(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    if not services.reminders.clear(user_id):
        raise domain_error_to_http(ReminderNotScheduledError(user_id))
    return {"ok": True, "user_id": user_id, "state": services.reminders.state(user_id).value}


# --- Payday preview ---


@router.get("/paydays/options")
def payday_options() -> dict[str, Any]:
    """Choices for the payday picker."""
    return {"options": [opt._asdict() for opt in PAYDAY_OPTIONS]}


@router.get("/paydays/preview")
def preview_paydays(
    payday: str = Query(...),
    custom_date: str | None = Query(None),
    count: int = Query(DEFAULT_PREVIEW_COUNT, ge=1, le=MAX_PREVIEW_COUNT),
) -> dict[str, Any]:
    """Upcoming payday dates for a payday option, e.g. to confirm a choice in the UI."""
    _check_payday(payday)
    spec = parse_payday_spec(payday, custom_date)
    return {
        "payday": spec_label(spec),
        "explanation": payday_explanation(payday),
        "next": describe_next_payday(spec),
        "days_until": days_until(spec),
        "upcoming": [d.isoformat() for d in upcoming_occurrences(spec, count)],
    }


# --- Profile ---


class ProfileBody(BaseModel):
    email: str | None = None
    timezone: str | None = None
    currency: str | None = None
    payday: str | None = None
    custom_payday: str | None = None
    partnership_id: str | None = None
    # When set, the payday reminder is (re)scheduled from the stored profile
    expected_contribution: float | None = Field(None, ge=0)
    reminder_time: ReminderTime = DEFAULT_REMINDER_TIME


@router.post("/profile")
def save_profile(
    body: ProfileBody,
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    if body.payday:
        _check_payday(body.payday)
    profile = UserProfile(
        user_id=user_id,
        email=body.email,
        timezone=body.timezone or services.settings.default_timezone,
        currency=body.currency or services.settings.default_currency,
        payday=body.payday,
        custom_payday=body.custom_payday,
        partnership_id=body.partnership_id,
    )
    services.repository.put_profile(profile)
    out: dict[str, Any] = {"ok": True, "profile": profile.model_dump(mode="json"), "reminder": None}
    if body.expected_contribution is not None:
        reminder = services.reminders.setup_payday_reminders(
            profile, body.expected_contribution, reminder_time=body.reminder_time
        )
        out["reminder"] = reminder.model_dump(mode="json") if reminder else None
    return out


@router.get("/profile")
def get_profile(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    profile = services.repository.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"No profile for user {user_id}")
    return profile.model_dump(mode="json")
