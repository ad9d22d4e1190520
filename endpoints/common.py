from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator

from fastapi import HTTPException, Request

from persistence.interfaces import MalformedRecordError, StoreBackendError
from persistence.records import ActionType
from services import Services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


@contextlib.contextmanager
def http_errors() -> Iterator[None]:
    """Translate domain and store failures into HTTP errors."""
    try:
        yield
    except MalformedRecordError as e:
        logger.error("REQUEST: %s", e)
        raise HTTPException(status_code=500, detail="malformed_record") from e
    except StoreBackendError as e:
        raise HTTPException(status_code=503, detail="storage_unavailable") from e
    except LookupError as e:
        raise HTTPException(status_code=404, detail=f"not_found: {e}") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _header_int(request: Request, name: str) -> int | None:
    raw = request.headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def log_action(
    request: Request,
    user_id: str,
    action_type: ActionType,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Record a UI-level action with the caller's client environment; never fails the request."""
    await get_services(request).analytics.log_action(
        user_id,
        action_type,
        metadata,
        user_agent=request.headers.get("user-agent"),
        screen_width=_header_int(request, "x-screen-width"),
        screen_height=_header_int(request, "x-screen-height"),
    )
