from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from persistence.records import ActionType, Visibility
from services.posts import contains_url

from .auth_endpoints import current_user_id, optional_user_id
from .common import get_services, http_errors, log_action

router = APIRouter(prefix="/api", tags=["screens"])


class UploadRequest(BaseModel):
    images: list[str]
    visibility: Visibility = Visibility.PUBLIC


class CommentRequest(BaseModel):
    text: str


class VisibilityRequest(BaseModel):
    visibility: Visibility | None = None


@router.post("/screens", status_code=201)
async def upload_screen(request: Request, body: UploadRequest, user_id: str = Depends(current_user_id)):
    with http_errors():
        screen = await get_services(request).posts.upload(user_id, body.images, visibility=body.visibility)
    await log_action(request, user_id, ActionType.POST_CREATE, {"screenId": screen.id, "imageCount": len(body.images)})
    return screen


@router.get("/feed")
async def feed(request: Request):
    with http_errors():
        return await get_services(request).posts.feed()


@router.get("/saved")
async def saved_screens(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        return await get_services(request).posts.saved_screens(user_id)


@router.get("/users/{owner_id}/screens")
async def profile_screens(request: Request, owner_id: str):
    with http_errors():
        return await get_services(request).posts.profile_screens(owner_id, optional_user_id(request))


@router.get("/users/{owner_id}/screens/{screen_id}")
async def get_screen(request: Request, owner_id: str, screen_id: str):
    viewer = optional_user_id(request)
    with http_errors():
        screen = await get_services(request).posts.get(owner_id, screen_id)
    if screen.visibility != Visibility.PUBLIC and viewer != owner_id:
        raise HTTPException(status_code=404, detail="not_found")
    if viewer is not None:
        await log_action(request, viewer, ActionType.POST_VIEW, {"screenId": screen_id, "ownerId": owner_id})
    return screen


@router.post("/users/{owner_id}/screens/{screen_id}/like")
async def toggle_like(request: Request, owner_id: str, screen_id: str, user_id: str = Depends(current_user_id)):
    with http_errors():
        screen = await get_services(request).posts.toggle_like(user_id, owner_id, screen_id)
    action = ActionType.LIKE_ADD if user_id in screen.likes else ActionType.LIKE_REMOVE
    await log_action(request, user_id, action, {"screenId": screen_id, "ownerId": owner_id})
    return screen


@router.post("/users/{owner_id}/screens/{screen_id}/save")
async def toggle_save(request: Request, owner_id: str, screen_id: str, user_id: str = Depends(current_user_id)):
    with http_errors():
        screen = await get_services(request).posts.toggle_save(user_id, owner_id, screen_id)
    action = ActionType.SAVE_ADD if user_id in screen.saves else ActionType.SAVE_REMOVE
    await log_action(request, user_id, action, {"screenId": screen_id, "ownerId": owner_id})
    return screen


@router.post("/users/{owner_id}/screens/{screen_id}/comments", status_code=201)
async def add_comment(
    request: Request,
    owner_id: str,
    screen_id: str,
    body: CommentRequest,
    user_id: str = Depends(current_user_id),
):
    with http_errors():
        comment = await get_services(request).posts.add_comment(user_id, owner_id, screen_id, body.text)
    await log_action(request, user_id, ActionType.COMMENT_ADD, {"screenId": screen_id, "ownerId": owner_id})
    return {"comment": comment, "containsUrl": contains_url(comment.text)}


@router.patch("/screens/{screen_id}/visibility")
async def change_visibility(
    request: Request,
    screen_id: str,
    body: VisibilityRequest,
    user_id: str = Depends(current_user_id),
):
    posts = get_services(request).posts
    with http_errors():
        if body.visibility is None:
            return await posts.toggle_visibility(user_id, screen_id)
        return await posts.set_visibility(user_id, screen_id, body.visibility)


@router.delete("/screens/{screen_id}")
async def delete_screen(request: Request, screen_id: str, user_id: str = Depends(current_user_id)):
    with http_errors():
        await get_services(request).posts.delete(user_id, screen_id)
    await log_action(request, user_id, ActionType.POST_DELETE, {"screenId": screen_id})
    return {"deleted": True}
