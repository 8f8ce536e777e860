"""Vision router: one call signature for every vision-capable provider.

Dispatch goes through the ``STRATEGIES`` lookup table; each strategy builds
its provider-specific body and reads its provider-specific answer, so callers
only ever see ``VisionResponse``.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

import httpx

from stampid.core.config import Settings, get_settings

from .errors import MalformedProviderResponse, NetworkError, ProviderHttpError
from .providers import GenerationParams, VisionRequest, VisionResponse, get_strategy
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class VisionRouter:
    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        params: GenerationParams | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._registry = registry
        self._params = params or GenerationParams()
        self._transport = transport

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def call_vision_llm(
        self,
        request: VisionRequest,
        provider_id: str | None = None,
    ) -> VisionResponse:
        """Send *request* to *provider_id* (default: active provider).

        Single POST, no retries and no timeout of its own; bounding the call
        is the caller's job.
        """
        pid = (provider_id or self._registry.active_provider).lower().strip()
        strategy = get_strategy(pid)
        connection = self._registry.resolve_provider(pid)
        wire = strategy.build_request(request, connection, self._params)

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                resp = await client.post(
                    wire.url,
                    params=wire.params or None,
                    headers=wire.headers,
                    json=wire.json,
                )
        except httpx.TransportError as exc:
            logger.warning("Vision call to %r failed at transport level: %s", pid, exc)
            raise NetworkError(f"{pid}: {exc}") from exc

        elapsed = (time.monotonic() - t0) * 1000

        if not resp.is_success:
            logger.warning("Vision call to %r returned HTTP %s (%.0f ms)", pid, resp.status_code, elapsed)
            raise ProviderHttpError(resp.status_code, pid)

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise MalformedProviderResponse(pid, "body is not JSON") from exc

        try:
            content = strategy.extract_content(data)
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedProviderResponse(pid, f"unexpected response shape ({exc})") from exc

        logger.info(
            "Vision call ok provider=%s model=%s latency_ms=%.2f chars=%d",
            pid,
            connection.model,
            elapsed,
            len(content),
        )
        return VisionResponse(content=content, model=connection.model, provider=pid)


def get_vision_router(
    settings: Settings | None = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VisionRouter:
    """Build a router from the process settings."""
    settings = settings or get_settings()
    return VisionRouter(
        ProviderRegistry.from_settings(settings),
        params=GenerationParams(
            max_tokens=settings.ai_max_tokens,
            temperature=settings.ai_temperature,
        ),
        transport=transport,
    )
