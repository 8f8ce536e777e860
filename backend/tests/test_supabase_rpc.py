"""Unit tests for the Supabase RPC fallback channel."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from stampid.core.config import Settings
from stampid.services.ai.common.errors import (
    MalformedResponse,
    MissingCredential,
    NetworkError,
    ProviderHttpError,
    RequestTimeout,
)
from stampid.services.supabase_rpc import SupabaseRpcChannel


def _factory(data=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    call = client.rpc.return_value.execute
    if error is not None:
        call.side_effect = error
    else:
        call.return_value = MagicMock(data=data)
    return MagicMock(return_value=client)


def _channel(factory, **kwargs) -> SupabaseRpcChannel:
    return SupabaseRpcChannel("https://proj.supabase.co/", "anon-key", client_factory=factory, **kwargs)


class TestIdentifyStamp:
    def test_calls_rpc_function(self):
        factory = _factory({"identified": True, "name": "Blue Mauritius"})

        data = _channel(factory, timeout_seconds=12.0).identify_stamp("abc")

        assert data["name"] == "Blue Mauritius"
        args, kwargs = factory.call_args
        assert args == ("https://proj.supabase.co", "anon-key")
        assert kwargs["options"].postgrest_client_timeout == 12.0
        factory.return_value.rpc.assert_called_once_with("identify_stamp", {"image_base64": "abc"})

    def test_session_token_applied(self):
        factory = _factory({"identified": False})

        _channel(factory, access_token="user-jwt").identify_stamp("abc")

        factory.return_value.postgrest.auth.assert_called_once_with("user-jwt")

    def test_anon_key_used_without_session(self):
        factory = _factory({"identified": False})

        _channel(factory).identify_stamp("abc")

        factory.return_value.postgrest.auth.assert_not_called()

    def test_missing_function_is_http_error(self):
        error = APIError({"message": "Could not find the function identify_stamp", "code": "PGRST202"})

        with pytest.raises(ProviderHttpError) as exc_info:
            _channel(_factory(error=error)).identify_stamp("abc")

        assert exc_info.value.status == 404
        assert exc_info.value.provider == "supabase"
        assert "Could not find" in str(exc_info.value)

    def test_database_error_defaults_to_400(self):
        error = APIError({"message": "raise exception", "code": "P0001"})

        with pytest.raises(ProviderHttpError) as exc_info:
            _channel(_factory(error=error)).identify_stamp("abc")

        assert exc_info.value.status == 400

    def test_non_object_result(self):
        with pytest.raises(MalformedResponse):
            _channel(_factory([1, 2])).identify_stamp("abc")

    def test_timeout(self):
        error = httpx.ReadTimeout("slow")

        with pytest.raises(RequestTimeout):
            _channel(_factory(error=error), timeout_seconds=2.0).identify_stamp("abc")

    def test_connection_error(self):
        error = httpx.ConnectError("refused")

        with pytest.raises(NetworkError):
            _channel(_factory(error=error)).identify_stamp("abc")


class TestConfiguration:
    def test_missing_url(self):
        factory = _factory({})
        channel = SupabaseRpcChannel.from_settings(Settings(supabase_url="", supabase_key="k"), client_factory=factory)

        with pytest.raises(MissingCredential):
            channel.identify_stamp("abc")
        factory.assert_not_called()

    def test_missing_key(self):
        factory = _factory({})
        channel = SupabaseRpcChannel.from_settings(
            Settings(supabase_url="https://x.supabase.co", supabase_key=""),
            client_factory=factory,
        )

        with pytest.raises(MissingCredential):
            channel.identify_stamp("abc")
        factory.assert_not_called()
