"""
Producer entrypoint: other services publish notification events over HTTP.

POST /events/{type} with the event's fields as JSON; the event goes onto the bus like an
in-process publish (fire-and-forget, the response does not wait on delivery outcomes).
"""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from payday_notify.api.deps import get_services
from payday_notify.core.errors import PaydayNotifyError, domain_error_to_http
from payday_notify.services.container import ServiceContainer
from payday_notify.services.events import check_missed_contribution
from payday_notify.services.payloads import event_from_dict, event_to_dict
from payday_notify.services.types import NotificationType

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/events/types")
def event_types() -> dict[str, Any]:
    return {"types": [t.value for t in NotificationType]}


@router.post("/events/check-missed-contribution")
def missed_contribution_check(
    body: dict[str, Any] = Body(...),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    """Publishes a missed_contribution event only when actual_amount < expected_amount."""
    try:
        published = check_missed_contribution(
            services.bus,
            user_id=str(body["user_id"]),
            expected_amount=float(body["expected_amount"]),
            actual_amount=float(body["actual_amount"]),
            currency=str(body.get("currency") or services.settings.default_currency),
            partnership_id=body.get("partnership_id"),
            month=body.get("month"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise domain_error_to_http(PaydayNotifyError(f"Invalid missed-contribution check: {e}"))
    return {"ok": True, "published": published}


@router.post("/events/{event_type}", status_code=202)
def publish_event(
    event_type: str,
    body: dict[str, Any] = Body(...),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    try:
        event = event_from_dict(event_type, body)
    except PaydayNotifyError as e:
        raise domain_error_to_http(e)
    services.bus.publish(event)
    logger.info("Published %s event for user %s", event.type.value, event.user_id)
    return {"ok": True, "type": event.type.value, "event": event_to_dict(event)}
