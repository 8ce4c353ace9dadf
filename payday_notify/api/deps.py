"""
Request dependencies shared by the routers.

User identified by X-User-Id header or ?user_id= (default 'default').
"""
from fastapi import Header, Query, Request

from payday_notify.services.container import ServiceContainer

DEFAULT_USER_ID = "default"


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    user_id: str | None = Query(None),
) -> str:
    return (x_user_id or user_id or DEFAULT_USER_ID).strip() or DEFAULT_USER_ID
