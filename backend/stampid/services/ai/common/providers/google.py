"""Google Gemini ``generateContent`` wire format."""

from __future__ import annotations

from typing import Any

from ..registry import ProviderConnection
from .base import IMAGE_MIME_TYPE, GenerationParams, VisionRequest, WireRequest


def build_generate_content_request(
    request: VisionRequest,
    connection: ProviderConnection,
    params: GenerationParams,
) -> WireRequest:
    # No system role in this API: the system prompt becomes a leading text part.
    parts: list[dict[str, Any]] = []
    if request.system_prompt:
        parts.append({"text": request.system_prompt})
    parts.append({"text": request.prompt})
    parts.append({"inline_data": {"mime_type": IMAGE_MIME_TYPE, "data": request.image_encoding}})

    return WireRequest(
        url=f"{connection.base_url.rstrip('/')}/models/{connection.model}:generateContent",
        params={"key": connection.credential},
        headers={"Content-Type": "application/json"},
        json={
            "contents": [{"parts": parts}],
            "generationConfig": {
                "maxOutputTokens": params.max_tokens,
                "temperature": params.temperature,
            },
        },
    )


def extract_generate_content_text(data: Any) -> str:
    text = data["candidates"][0]["content"]["parts"][0]["text"]
    if not isinstance(text, str):
        raise TypeError(f"candidates[0].content.parts[0].text is {type(text).__name__}, expected str")
    return text
