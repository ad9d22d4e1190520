from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from services.vision import VisionRequestError, VisionResponseError, VisionUnavailableError

from .common import get_services

router = APIRouter(prefix="/api", tags=["validation"])
logger = logging.getLogger(__name__)


def _failure(status_code: int, error: str, reason: str) -> JSONResponse:
    return JSONResponse(
        {"error": error, "isHomeScreen": False, "reason": reason},
        status_code=status_code,
    )


@router.post("/validate-homescreen")
async def validate_homescreen(body: dict[str, Any], request: Request):
    image_data = body.get("imageData")
    if not isinstance(image_data, str) or not image_data.strip():
        return JSONResponse({"error": "imageData is required"}, status_code=400)

    validator = get_services(request).validator
    try:
        result = await validator.validate(image_data)
    except VisionRequestError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except VisionUnavailableError as e:
        logger.warning("VALIDATE: %s", e)
        return _failure(503, "validation_unavailable", "Home-screen validation is not configured")
    except VisionResponseError as e:
        logger.warning("VALIDATE: %s", e)
        return _failure(500, "Failed to parse the validation result", "The model's answer could not be parsed")
    except Exception as e:
        # Upstream SDK / network failures surface here.
        logger.exception("VALIDATE: model call failed")
        return _failure(500, str(e) or "validation failed", f"Error: {e}")
    return result


@router.get("/health")
async def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "hasApiKey": get_services(request).validator.has_api_key,
        "storageBackend": settings.storage_backend,
    }
