"""Push notification registration: device tokens per user, plus the permission check."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from payday_notify.api.deps import current_user_id, get_services
from payday_notify.services.container import ServiceContainer

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterPushBody(BaseModel):
    device_token: str = Field(..., min_length=1, max_length=256, description="APNs device token (hex string)")
    platform: str = Field(default="ios", pattern="^(ios|android)$")


class UnregisterPushBody(BaseModel):
    device_token: str = Field(..., min_length=1, max_length=256)


@router.post("/push/register")
def register_push_token(
    body: RegisterPushBody,
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
):
    """
    Register a device for push notifications.
    Call this from the iOS app after receiving the device token from APNs.
    Idempotent: same token is upserted (owner and updated_at refreshed).
    """
    created = services.repository.add_push_token(user_id, body.device_token, body.platform)
    if not created:
        return {"ok": True, "message": "Token already registered"}
    logger.info("Registered push token for user=%s platform=%s", user_id, body.platform)
    return {"ok": True, "message": "Token registered"}


@router.post("/push/unregister")
def unregister_push_token(body: UnregisterPushBody, services: ServiceContainer = Depends(get_services)):
    removed = services.repository.remove_push_token(body.device_token)
    return {"ok": True, "removed": removed}


@router.post("/push/permission")
def request_push_permission(
    services: ServiceContainer = Depends(get_services),
    user_id: str = Depends(current_user_id),
):
    """Whether push can reach this user (APNs configured and a device registered)."""
    return {"user_id": user_id, "granted": services.dispatcher.request_push_permission(user_id)}
