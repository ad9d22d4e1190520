from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from persistence.records import ActionType

from .auth_endpoints import current_user_id
from .common import get_services, http_errors, log_action

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        views = await get_services(request).notifications.list_for_user(user_id)
    await log_action(request, user_id, ActionType.NOTIFICATION_VIEW, {"count": len(views)})
    return views


@router.get("/unread-count")
async def unread_count(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        return {"unreadCount": await get_services(request).notifications.unread_count(user_id)}


@router.post("/read-all")
async def mark_all_read(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        return {"changed": await get_services(request).notifications.mark_all_read(user_id)}


@router.post("/{notification_id}/read")
async def mark_read(request: Request, notification_id: str, user_id: str = Depends(current_user_id)):
    with http_errors():
        changed = await get_services(request).notifications.mark_read(user_id, notification_id)
    await log_action(request, user_id, ActionType.NOTIFICATION_CLICK, {"notificationId": notification_id})
    return {"changed": changed}
