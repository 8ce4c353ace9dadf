"""Notification preferences: category toggles, channel toggles, quiet hours."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from payday_notify.api.deps import current_user_id, get_services
from payday_notify.core.errors import PaydayNotifyError, domain_error_to_http
from payday_notify.services.container import ServiceContainer

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/preferences")
def get_preferences(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Current preferences; a user without any gets the all-enabled defaults."""
    return services.store.get_preferences(user_id).model_dump(mode="json")


@router.patch("/preferences")
def update_preferences(
    partial: dict[str, Any] = Body(..., examples=[{"partner_activity": False, "quiet_hours": {"enabled": True}}]),
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """
    Partial update: only the keys sent change. quiet_hours is merged key by key.
    Unknown keys or invalid values -> 422 and nothing is saved.
    """
    try:
        prefs = services.store.update_preferences(user_id, partial)
    except PaydayNotifyError as e:
        raise domain_error_to_http(e)
    return prefs.model_dump(mode="json")
