"""Provider strategy map: one ``ProviderStrategy`` per provider id."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ..errors import UnknownProvider
from .base import (
    GenerationParams,
    ProviderStrategy,
    VisionRequest,
    VisionResponse,
    WireRequest,
)
from .google import build_generate_content_request, extract_generate_content_text
from .openai import build_chat_completions_request, extract_chat_completions_content

__all__ = [
    "STRATEGIES",
    "get_strategy",
    "GenerationParams",
    "ProviderStrategy",
    "VisionRequest",
    "VisionResponse",
    "WireRequest",
]

_CHAT_COMPLETIONS = ProviderStrategy(
    build_request=build_chat_completions_request,
    extract_content=extract_chat_completions_content,
)

STRATEGIES: Mapping[str, ProviderStrategy] = MappingProxyType(
    {
        "qwen": _CHAT_COMPLETIONS,
        "deepseek": _CHAT_COMPLETIONS,
        "pixtral": _CHAT_COMPLETIONS,
        "openai": _CHAT_COMPLETIONS,
        "google": ProviderStrategy(
            build_request=build_generate_content_request,
            extract_content=extract_generate_content_text,
        ),
    }
)


def get_strategy(provider_id: str) -> ProviderStrategy:
    """Return the wire strategy for *provider_id* or raise ``UnknownProvider``."""
    strategy = STRATEGIES.get(provider_id.lower().strip())
    if strategy is None:
        raise UnknownProvider(provider_id)
    return strategy
