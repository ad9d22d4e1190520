from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response

from persistence.records import ActionType
from services.analytics import DEFAULT_LIMIT

from .auth_endpoints import current_user_id
from .common import get_services, http_errors

router = APIRouter(prefix="/api", tags=["analytics"])


@router.get("/actions")
async def list_actions(
    request: Request,
    actionType: ActionType | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = DEFAULT_LIMIT,
    user_id: str = Depends(current_user_id),
):
    with http_errors():
        return await get_services(request).analytics.user_actions(
            user_id, action_type=actionType, start=start, end=end, limit=limit
        )


@router.get("/actions/stats")
async def action_stats(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        return await get_services(request).analytics.action_stats(user_id)


@router.get("/actions/export.csv")
async def export_actions(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        body = await get_services(request).analytics.export_actions_csv(user_id)
    filename = f"actions_{user_id}_{int(datetime.now().timestamp() * 1000)}.csv"
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# No admin role exists; any signed-in user can read every user's stats.
@router.get("/admin/stats")
async def all_users_stats(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        return await get_services(request).analytics.all_users_stats()
