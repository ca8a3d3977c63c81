"""Shared route dependencies. Auth lives in the order/user service; callers pass the user id through."""
from fastapi import Header, HTTPException, Query

from bakery_reminders.services.push import PushGatewayClient


def current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    user_id: str | None = Query(None),
) -> str:
    uid = (x_user_id or user_id or "").strip()
    if not uid:
        raise HTTPException(status_code=401, detail="X-User-Id header or user_id query parameter required")
    return uid


def get_push_client() -> PushGatewayClient:
    return PushGatewayClient()
