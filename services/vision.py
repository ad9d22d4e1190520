from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import re

from google import genai
from google.genai import types
from pydantic import BaseModel

from settings import Settings

logger = logging.getLogger(__name__)

QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 1000
DEFAULT_MEDIA_TYPE = "image/jpeg"
SKIPPED_REASON = "Validation skipped (no vision API key configured)"
DEFAULT_REASON = "The model did not explain its decision"

HOME_SCREEN_PROMPT = """Is this image a screenshot of a smartphone home screen?

Look for the usual signs of a home screen:
- several app icons laid out in a grid
- a dock of frequently used apps along the bottom
- a status bar at the top (time, battery, signal)
- a visible wallpaper

Answer with JSON only, no other text:
{"isHomeScreen": true or false, "reason": "a concrete explanation of the decision"}"""

DATA_URL_RE = re.compile(r"^data:(?P<media>[\w.+-]+/[\w.+-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)
FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
INLINE_JSON_RE = re.compile(r"\{[\s\S]*?\"isHomeScreen\"[\s\S]*?\}")


class VisionError(Exception):
    pass


class VisionRequestError(VisionError, ValueError):
    """The submitted image data cannot be decoded."""


class VisionUnavailableError(VisionError):
    """No API key is configured and strict validation forbids skipping."""


class VisionResponseError(VisionError):
    """The model answered, but not with a usable verdict."""


class ValidationResult(BaseModel):
    isHomeScreen: bool
    reason: str


def call_predict_with_image(
    prompt: str,
    image_bytes: bytes,
    *,
    media_type: str,
    model: str,
    api_key: str,
) -> str:
    """Calls Gemini with a prompt and one image; returns the text answer."""
    client = genai.Client(api_key=api_key)
    response = client.models.generate_content(
        model=model,
        contents=[
            types.Part.from_bytes(data=image_bytes, mime_type=media_type),
            prompt,
        ],
        config=types.GenerateContentConfig(
            temperature=0, max_output_tokens=QUERY_RESPONSE_MAX_OUTPUT_TOKENS
        ),
    )
    if not response.text:
        raise VisionResponseError("empty response from model")
    return response.text


def decode_image_data(image_data: str) -> tuple[bytes, str]:
    """Accepts a data URL or bare base64; returns (bytes, media type)."""
    media_type = DEFAULT_MEDIA_TYPE
    payload = image_data.strip()
    match = DATA_URL_RE.match(payload)
    if match:
        media_type = (match.group("media") or DEFAULT_MEDIA_TYPE).lower()
        payload = payload[match.end():]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise VisionRequestError("imageData is not valid base64") from e
    if not data:
        raise VisionRequestError("imageData is empty")
    return data, media_type


def parse_verdict(text: str) -> ValidationResult | None:
    """
    Pull the JSON verdict out of a model answer.

    Tries a ```json fenced block first, then the first inline object that
    mentions "isHomeScreen".
    """
    candidates: list[str] = []
    fenced = FENCED_JSON_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    inline = INLINE_JSON_RE.search(text)
    if inline:
        candidates.append(inline.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            logger.debug("VISION: could not parse candidate %r", candidate[:200])
            continue
        if isinstance(parsed, dict) and isinstance(parsed.get("isHomeScreen"), bool):
            reason = parsed.get("reason")
            return ValidationResult(
                isHomeScreen=parsed["isHomeScreen"],
                reason=reason if isinstance(reason, str) and reason else DEFAULT_REASON,
            )
    return None


class HomeScreenValidator:
    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.gemini_api_key
        self._model = settings.vision_model
        self._strict = settings.strict_validation

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    async def validate(self, image_data: str) -> ValidationResult:
        # No key: the image is neither decoded nor inspected.
        if not self._api_key:
            if self._strict:
                raise VisionUnavailableError("no vision API key configured and strict validation is on")
            logger.info("VISION: no API key configured; accepting image without validation")
            return ValidationResult(isHomeScreen=True, reason=SKIPPED_REASON)

        image_bytes, media_type = decode_image_data(image_data)
        text = await asyncio.to_thread(
            call_predict_with_image,
            HOME_SCREEN_PROMPT,
            image_bytes,
            media_type=media_type,
            model=self._model,
            api_key=self._api_key,
        )
        logger.debug("VISION: model answer %r", text[:500])

        verdict = parse_verdict(text)
        if verdict is None:
            raise VisionResponseError("could not parse the model's verdict")
        return verdict
