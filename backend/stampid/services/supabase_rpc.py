"""Supabase RPC fallback channel for stamp identification.

Used by ``IdentificationClient`` when no identification backend URL is
configured. Calls the ``identify_stamp`` Postgres function and returns its
JSON (a single legacy stamp result).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client
from supabase.client import ClientOptions

from stampid.core.config import Settings, get_settings
from stampid.services.ai.common.errors import (
    MalformedResponse,
    MissingCredential,
    NetworkError,
    ProviderHttpError,
    RequestTimeout,
)

logger = logging.getLogger(__name__)

RPC_FUNCTION = "identify_stamp"

# PostgREST error codes that have a clear HTTP meaning.
_POSTGREST_STATUS = {
    "PGRST202": 404,  # function not found
    "PGRST301": 401,  # JWT invalid
    "PGRST302": 401,  # anonymous access disabled
    "42501": 403,  # insufficient privilege
}

ClientFactory = Callable[..., Client]


class FallbackChannel(Protocol):
    def identify_stamp(self, image_base64: str) -> dict[str, Any]: ...


def _status_for(exc: APIError) -> int:
    code = str(exc.code or "")
    if code.isdigit() and len(code) == 3:
        return int(code)
    return _POSTGREST_STATUS.get(code, 400)


class SupabaseRpcChannel:
    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        *,
        timeout_seconds: float = 30.0,
        access_token: Optional[str] = None,
        client_factory: ClientFactory = create_client,
    ) -> None:
        self._url = supabase_url.rstrip("/")
        self._key = supabase_key
        self._timeout = timeout_seconds
        self._access_token = access_token
        self._client_factory = client_factory

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "SupabaseRpcChannel":
        settings = settings or get_settings()
        kwargs.setdefault("timeout_seconds", settings.identify_timeout_seconds)
        return cls(settings.supabase_url, settings.supabase_key, **kwargs)

    def _client(self) -> Client:
        if not self._url:
            raise MissingCredential("supabase", "SUPABASE_URL")
        if not self._key:
            raise MissingCredential("supabase", "SUPABASE_KEY")

        client = self._client_factory(
            self._url,
            self._key,
            options=ClientOptions(postgrest_client_timeout=self._timeout),
        )
        if self._access_token:
            # Run the function as the signed-in user rather than anon.
            client.postgrest.auth(self._access_token)
        return client

    def identify_stamp(self, image_base64: str) -> dict[str, Any]:
        client = self._client()

        try:
            response = client.rpc(RPC_FUNCTION, {"image_base64": image_base64}).execute()
        except APIError as exc:
            status = _status_for(exc)
            logger.warning("Supabase RPC %s failed: %s %s", RPC_FUNCTION, exc.code, exc.message)
            raise ProviderHttpError(status, "supabase", exc.message or "") from exc
        except httpx.TimeoutException as exc:
            raise RequestTimeout(self._timeout) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"supabase rpc: {exc}") from exc

        data = response.data
        if not isinstance(data, dict):
            raise MalformedResponse(f"supabase rpc returned {type(data).__name__}, expected object")
        return data
