"""Value objects shared by every vision provider strategy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..registry import ProviderConnection

IMAGE_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class VisionRequest:
    """Immutable request: base64 image + prompt (+ optional system prompt)."""

    image_encoding: str
    prompt: str
    system_prompt: Optional[str] = None


@dataclass(frozen=True)
class VisionResponse:
    """The single canonical result of any provider call."""

    content: str
    model: str
    provider: str


@dataclass(frozen=True)
class GenerationParams:
    max_tokens: int = 2000
    temperature: float = 0.2


@dataclass(frozen=True)
class WireRequest:
    """Provider-specific HTTP call, ready to be sent with httpx."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


BuildRequest = Callable[[VisionRequest, ProviderConnection, GenerationParams], WireRequest]
ExtractContent = Callable[[Any], str]


@dataclass(frozen=True)
class ProviderStrategy:
    """Wire behaviour of one provider: how to build the call, how to read the answer.

    ``extract_content`` receives the decoded JSON body and must raise
    ``KeyError`` / ``IndexError`` / ``TypeError`` when the expected path is
    absent; the router turns those into ``MalformedProviderResponse``.
    """

    build_request: BuildRequest
    extract_content: ExtractContent
