from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from persistence.records import ActionType
from settings import Settings

from .common import get_services, http_errors, log_action

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class SignInRequest(BaseModel):
    email: str
    provider: str = "email"


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _mask_token(token: str, *, head: int = 16, tail: int = 8) -> str:
    if not isinstance(token, str):
        return str(token)
    if len(token) <= head + tail:
        return token[:4] + "..."
    return f"{token[:head]}...{token[-tail:]}"


def issue_access_token(settings: Settings, *, subject: str) -> dict[str, Any]:
    now = int(time.time())
    payload = {
        "iss": settings.issuer,
        "sub": subject,
        "iat": now,
        "exp": now + settings.access_token_ttl_seconds,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)
    logger.debug("ISSUED JWT: sub=%s token=%s", subject, _mask_token(token))
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": settings.access_token_ttl_seconds,
    }


def _verify_token(settings: Settings, token: str) -> str | None:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_alg],
            options={"require": ["exp", "sub", "iss"]},
            issuer=settings.issuer,
        )
    except jwt.PyJWTError as e:
        logger.info("AUTH VERIFY: jwt decode failed: %r", e)
        return None
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        logger.info("AUTH VERIFY: bad sub")
        return None
    return sub


def optional_user_id(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return _verify_token(_settings(request), token.strip())


def current_user_id(request: Request) -> str:
    user_id = optional_user_id(request)
    if user_id is None:
        raise HTTPException(status_code=401, detail="not_authenticated")
    return user_id


@router.post("/sign-in")
async def sign_in(request: Request, body: SignInRequest):
    email = body.email.strip()
    if not email:
        raise HTTPException(status_code=400, detail="email is required")
    if _settings(request).debug_log_requests:
        logger.info("SIGN IN: provider=%s", body.provider)
    with http_errors():
        user = await get_services(request).session.sign_in(email, body.provider)
    await log_action(request, user.id, ActionType.LOGIN, {"provider": body.provider})
    return {"user": user.model_dump(mode="json"), **issue_access_token(_settings(request), subject=user.id)}


@router.get("/session")
async def restore_session(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        user = await get_services(request).session.restore(user_id)
    return {"user": user.model_dump(mode="json") if user is not None else None}


@router.post("/sign-out")
async def sign_out(request: Request, user_id: str = Depends(current_user_id)):
    with http_errors():
        cleared = await get_services(request).session.sign_out(user_id)
    if cleared:
        await log_action(request, user_id, ActionType.LOGOUT)
    return {"signedOut": cleared}
