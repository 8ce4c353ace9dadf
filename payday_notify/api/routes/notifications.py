"""
User notifications API: ledger, read state and the in-app toast feed.

Supports: list (with unread filter), unread badge count, mark one read, mark all read,
delete, and draining pending in-app toasts.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from payday_notify.api.deps import current_user_id, get_services
from payday_notify.core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from payday_notify.core.errors import NotificationNotFoundError, PaydayNotifyError, domain_error_to_http
from payday_notify.services.container import ServiceContainer
from payday_notify.services.types import Notification

router = APIRouter()
logger = logging.getLogger(__name__)


def _owned(services: ServiceContainer, notification_id: str, user_id: str) -> Notification:
    """Notification by id, as long as it belongs to user_id (others' ids look missing)."""
    try:
        notification = services.store.get(notification_id)
    except PaydayNotifyError as e:
        raise domain_error_to_http(e)
    if notification.user_id != user_id:
        raise domain_error_to_http(NotificationNotFoundError(notification_id))
    return notification


# --- List ---


@router.get("/notifications")
def list_notifications(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    unread_only: bool = Query(False),
) -> dict[str, Any]:
    """
    List notifications for the user, newest first.
    Use unread_only=true to only return unread (e.g. for a filtered view).
    """
    rows = services.store.list(user_id, limit=limit, unread_only=unread_only)
    return {
        "notifications": [n.model_dump(mode="json") for n in rows],
        "unread_count": services.store.unread_count(user_id),
    }


@router.get("/notifications/unread-count")
def unread_count(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    return {"user_id": user_id, "unread_count": services.store.unread_count(user_id)}


@router.get("/notifications/feed")
def drain_feed(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Pending in-app toasts for the user; each toast is returned once."""
    toasts = services.in_app.drain(user_id)
    return {"toasts": toasts, "count": len(toasts)}


# --- Mark one read ---


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark a single notification as read. Marking it again keeps the first read_at."""
    _owned(services, notification_id, user_id)
    notification = services.store.mark_read(notification_id)
    return {"ok": True, "id": notification_id, "read_at": notification.read_at.isoformat()}


# --- Mark all read ---


@router.post("/notifications/mark-all-read")
def mark_all_read(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark all notifications for the user as read (e.g. 'Clear all' in UI)."""
    marked = services.store.mark_all_read(user_id)
    return {"ok": True, "user_id": user_id, "marked_count": marked}


# --- Delete ---


@router.delete("/notifications/{notification_id}")
def delete_notification(
    notification_id: str,
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    _owned(services, notification_id, user_id)
    deleted = services.store.delete(notification_id)
    return {"ok": deleted, "id": notification_id}
