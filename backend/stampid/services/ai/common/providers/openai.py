"""OpenAI-compatible chat-completions wire format.

Shared by ``qwen``, ``deepseek``, ``pixtral`` and ``openai``: they differ
only in base URL, model and credential, all of which come from the
``ProviderConnection``.
"""

from __future__ import annotations

from typing import Any

from ..registry import ProviderConnection
from .base import IMAGE_MIME_TYPE, GenerationParams, VisionRequest, WireRequest


def build_chat_completions_request(
    request: VisionRequest,
    connection: ProviderConnection,
    params: GenerationParams,
) -> WireRequest:
    messages: list[dict[str, Any]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.append(
        {
            "role": "user",
            "content": [
                {"type": "text", "text": request.prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{IMAGE_MIME_TYPE};base64,{request.image_encoding}"},
                },
            ],
        }
    )

    return WireRequest(
        url=f"{connection.base_url.rstrip('/')}/chat/completions",
        headers={
            "Authorization": f"Bearer {connection.credential}",
            "Content-Type": "application/json",
        },
        json={
            "model": connection.model,
            "messages": messages,
            "max_tokens": params.max_tokens,
            "temperature": params.temperature,
        },
    )


def extract_chat_completions_content(data: Any) -> str:
    content = data["choices"][0]["message"]["content"]
    if not isinstance(content, str):
        raise TypeError(f"choices[0].message.content is {type(content).__name__}, expected str")
    return content
