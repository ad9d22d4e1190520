from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from persistence.records import ActionType, AgePublicSetting
from services.profiles import DEFAULT_BIO, format_age

from .auth_endpoints import current_user_id, optional_user_id
from .common import get_services, http_errors, log_action

router = APIRouter(prefix="/api", tags=["profiles"])


class ProfileSetupRequest(BaseModel):
    displayName: str
    birthDate: date
    bio: str | None = DEFAULT_BIO
    profileImage: str | None = None


class ProfileUpdateRequest(BaseModel):
    displayName: str | None = None
    bio: str | None = None
    birthDate: date | None = None
    agePublicSetting: AgePublicSetting | None = None
    profileImage: str | None = None


@router.put("/profile")
async def complete_profile_setup(
    request: Request,
    body: ProfileSetupRequest,
    user_id: str = Depends(current_user_id),
):
    with http_errors():
        user = await get_services(request).profiles.complete_setup(
            user_id,
            display_name=body.displayName,
            birth_date=body.birthDate,
            bio=body.bio,
            profile_image=body.profileImage,
        )
    await log_action(request, user_id, ActionType.SIGNUP)
    return user


@router.patch("/profile")
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user_id: str = Depends(current_user_id),
):
    changes = body.model_dump(exclude_unset=True)
    with http_errors():
        user = await get_services(request).profiles.update_profile(user_id, **changes)
    await log_action(request, user_id, ActionType.PROFILE_EDIT, {"fields": sorted(changes)})
    return user


@router.get("/users/{user_id}")
async def get_profile(request: Request, user_id: str):
    with http_errors():
        user = await get_services(request).profiles.get_profile(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="user_not_found")
    viewer = optional_user_id(request)
    if viewer is not None and viewer != user_id:
        await log_action(request, viewer, ActionType.PROFILE_VIEW, {"profileUserId": user_id})
    return {
        "user": user,
        "ageDisplay": format_age(user.birthDate, user.agePublicSetting),
    }
