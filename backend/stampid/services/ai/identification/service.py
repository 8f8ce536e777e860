"""Stamp identification (backend side): image → vision router → ``MultiStampResult``."""

from __future__ import annotations

import base64
import logging
import re
import time
from typing import Optional

import httpx

from stampid.core.config import get_settings

from ..common.audit import log_ai_run
from ..common.errors import MalformedResponse, NetworkError, ProviderHttpError, ValidationError
from ..common.json_tools import extract_json
from ..common.providers import VisionRequest
from ..common.router import VisionRouter, get_vision_router
from .contracts import MultiStampResult, normalize_identification

logger = logging.getLogger(__name__)

IDENTIFY_SYSTEM_PROMPT = """You are an expert philatelist (stamp expert) with deep knowledge of stamps worldwide.
Analyze the stamp image. The image may contain ONE or MULTIPLE stamps.

Return a JSON response with this structure:
{
  "stamps": [
    {
      "identified": true,
      "confidence": 85,
      "name": "Stamp name/description",
      "country": "Country of origin",
      "year_issued": 1950,
      "catalog_number": "Scott/Stanley Gibbons number",
      "denomination": "Face value",
      "category": "definitive|commemorative|airmail|special|other",
      "theme": "Subject theme",
      "condition": "mint|mint_hinged|used|damaged",
      "condition_notes": "Brief notes",
      "estimated_value_low": 1.00,
      "estimated_value_high": 5.00,
      "currency": "USD",
      "description": "Brief historical context",
      "rarity": "common|uncommon|rare|very_rare",
      "bounding_box": { "x": 0, "y": 0, "width": 100, "height": 100, "normalized": true }
    }
  ],
  "total_stamps_detected": 1,
  "image_quality": "good|fair|poor",
  "suggestions": "Optional tips"
}

Bounding box uses normalized coordinates (0-1 range).
If no stamp detected, return: { "stamps": [], "total_stamps_detected": 0, "image_quality": "poor" }
Return ONLY valid JSON, no markdown."""

IDENTIFY_USER_PROMPT = "Identify all stamps in this image. Detect each stamp separately."

_DATA_URL_PREFIX_RE = re.compile(r"^data:image/\w+;base64,")


def clean_base64(image_base64: str) -> str:
    """Drop a ``data:image/...;base64,`` prefix if present."""
    return _DATA_URL_PREFIX_RE.sub("", image_base64.strip())


async def fetch_image_base64(
    image_url: str,
    *,
    max_bytes: int,
    timeout_seconds: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Download *image_url* and return it base64-encoded."""
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
            resp = await client.get(image_url, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise NetworkError(f"could not download image: {exc}") from exc

    if not resp.is_success:
        raise ProviderHttpError(resp.status_code, None, "image download failed")

    content = resp.content
    if len(content) > max_bytes:
        raise ValidationError(
            f"Image is {len(content) / (1024 * 1024):.1f} MB; limit is {max_bytes / (1024 * 1024):.1f} MB"
        )
    return base64.b64encode(content).decode("ascii")


def _parse_failure(raw: str) -> MultiStampResult:
    return MultiStampResult(
        stamps=[],
        total_detected=0,
        image_quality="unknown",
        parse_error=True,
        raw=raw,
    )


async def identify_stamps(
    image_base64: Optional[str] = None,
    image_url: Optional[str] = None,
    *,
    router: VisionRouter | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MultiStampResult:
    """Identify every stamp in one image.

    Model text that is not JSON, or JSON matching neither the multi-stamp
    nor the legacy single-stamp shape, yields an empty result flagged
    ``parse_error`` with the raw text attached.
    """
    settings = get_settings()

    if image_base64:
        encoded = clean_base64(image_base64)
    elif image_url:
        encoded = await fetch_image_base64(
            image_url,
            max_bytes=settings.max_image_size_bytes,
            timeout_seconds=settings.identify_timeout_seconds,
            transport=transport,
        )
    else:
        raise ValidationError("image_base64 or image_url required")

    router = router or get_vision_router(settings)
    request = VisionRequest(
        image_encoding=encoded,
        prompt=IDENTIFY_USER_PROMPT,
        system_prompt=IDENTIFY_SYSTEM_PROMPT,
    )

    t0 = time.monotonic()
    response = await router.call_vision_llm(request)
    latency_ms = (time.monotonic() - t0) * 1000

    parsed = extract_json(response.content)
    result: MultiStampResult
    if parsed is None:
        logger.warning("Identification: no JSON in %s response", response.provider)
        result = _parse_failure(response.content)
    else:
        try:
            result = normalize_identification(parsed)
        except MalformedResponse as exc:
            logger.warning("Identification: unusable JSON from %s: %s", response.provider, exc)
            result = _parse_failure(response.content)

    result.model_used = response.model
    result.provider = response.provider

    log_ai_run(
        scope="identify",
        response=response,
        prompt_text=f"{IDENTIFY_SYSTEM_PROMPT}\n\n{IDENTIFY_USER_PROMPT}",
        parsed_output=None if result.parse_error else result.to_wire(),
        latency_ms=latency_ms,
        extra_meta={
            "stamps_detected": result.total_detected,
            "image_quality": result.image_quality,
            "parse_error": result.parse_error,
        },
    )

    return result
