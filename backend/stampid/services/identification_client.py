"""Identification client: app-side entry point for identifying stamps.

Talks to the identification backend (``IDENTIFY_STAMP_URL``) or, when none
is configured, to the fallback RPC channel. Whatever shape comes back is
normalized to ``MultiStampResult``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from stampid.core.config import Settings, get_settings
from stampid.core.image_processing import ImagePreparer, PillowImagePreparer
from stampid.services.ai.common.errors import (
    MalformedResponse,
    NetworkError,
    ProviderHttpError,
    RequestTimeout,
    ValidationError,
)
from stampid.services.ai.identification.contracts import (
    LegacyShape,
    MultiStampResult,
    StampIdentificationResult,
    normalize,
    normalize_identification,
)
from stampid.services.supabase_rpc import FallbackChannel, SupabaseRpcChannel

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class IdentificationClient:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        image_preparer: ImagePreparer | None = None,
        token_provider: TokenProvider | None = None,
        fallback_channel: FallbackChannel | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._image_preparer = image_preparer
        self._token_provider = token_provider
        self._fallback_channel = fallback_channel
        self._transport = transport

    async def identify(
        self,
        image_uri: Optional[str] = None,
        image_base64: Optional[str] = None,
        image_url: Optional[str] = None,
        *,
        timeout_ms: Optional[int] = None,
    ) -> MultiStampResult:
        """Identify the stamps in one image.

        Raises ``ValidationError`` when no image is given or ``timeout_ms`` is
        not positive, ``RequestTimeout`` when the backend does not answer in
        time, ``NetworkError`` on connection failures, ``ProviderHttpError``
        for non-2xx answers and ``MalformedResponse`` for bodies of unknown
        shape.
        """
        if not (image_uri or image_base64 or image_url):
            raise ValidationError("Either image_uri, image_base64 or image_url is required")
        if timeout_ms is not None and timeout_ms <= 0:
            raise ValidationError(f"timeout_ms must be positive, got {timeout_ms}")

        if image_uri and not image_base64 and not image_url:
            image_base64 = await self._prepare(image_uri)

        if not self._settings.identify_stamp_url:
            return await self._identify_via_fallback(image_base64 or "")

        timeout_seconds = timeout_ms / 1000.0 if timeout_ms is not None else self._settings.identify_timeout_seconds
        return await self._identify_via_backend(image_base64, image_url, timeout_seconds)

    async def _prepare(self, image_uri: str) -> str:
        preparer = self._image_preparer or PillowImagePreparer(
            max_source_bytes=self._settings.max_image_size_bytes,
        )
        prepared = await asyncio.to_thread(preparer.prepare, image_uri)
        logger.info("Identification: uploading ~%d KB image", prepared.approximate_size_kb)
        return prepared.base64

    async def _session_token(self) -> Optional[str]:
        if self._token_provider is None:
            return None
        return await self._token_provider()

    async def _auth_headers(self) -> dict[str, str]:
        token = await self._session_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def _identify_via_backend(
        self,
        image_base64: Optional[str],
        image_url: Optional[str],
        timeout_seconds: float,
    ) -> MultiStampResult:
        headers = {"Content-Type": "application/json"}
        headers.update(await self._auth_headers())
        body = {"image_base64": image_base64, "image_url": image_url}

        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                resp = await asyncio.wait_for(
                    client.post(self._settings.identify_stamp_url, json=body, headers=headers),
                    timeout=timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("Identification: backend timed out after %.1fs", timeout_seconds)
            raise RequestTimeout(timeout_seconds) from exc
        except httpx.TransportError as exc:
            logger.warning("Identification: backend unreachable: %s", exc)
            raise NetworkError(str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            raise self._http_error(resp)

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise MalformedResponse("backend returned non-JSON body") from exc

        result = normalize_identification(data)
        logger.info(
            "Identification: %d stamp(s), image_quality=%s, model=%s",
            result.total_detected,
            result.image_quality,
            result.model_used,
        )
        return result

    @staticmethod
    def _http_error(resp: httpx.Response) -> ProviderHttpError:
        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError):
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        message = str(payload.get("error") or f"API error: {resp.status_code}")
        provider = payload.get("provider")
        status = payload.get("provider_status")
        if not isinstance(status, int):
            status = resp.status_code

        logger.warning("Identification: backend HTTP %s (%s)", resp.status_code, message)
        return ProviderHttpError(status, provider, message)

    async def _identify_via_fallback(self, image_base64: str) -> MultiStampResult:
        channel = self._fallback_channel
        if channel is None:
            channel = SupabaseRpcChannel.from_settings(self._settings, access_token=await self._session_token())
        if not image_base64:
            logger.warning("Identification: fallback channel called without base64 image data")

        data = await asyncio.to_thread(channel.identify_stamp, image_base64)
        try:
            single = StampIdentificationResult.model_validate(data)
        except PydanticValidationError as exc:
            raise MalformedResponse("fallback channel returned an invalid stamp result") from exc
        return normalize(LegacyShape(single))
