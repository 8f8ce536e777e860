"""Endpoint tests for /api/v1/identify-stamp, /api/v1/ai/model-info and /health."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from stampid.main import app
from stampid.services.ai.common.errors import (
    MissingCredential,
    NetworkError,
    ProviderHttpError,
    RequestTimeout,
    ValidationError,
)
from stampid.services.ai.identification.contracts import MultiStampResult

TARGET = "stampid.api.v1.identify.identify_stamps"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _result() -> MultiStampResult:
    return MultiStampResult.model_validate(
        {
            "stamps": [{"identified": True, "confidence": 90, "name": "Penny Black", "rarity": "uncommon"}],
            "total_stamps_detected": 1,
            "image_quality": "good",
            "model": "qwen-vl-max",
            "provider": "qwen",
        }
    )


class TestIdentifyStampEndpoint:
    def test_requires_bearer_token(self, client):
        resp = client.post("/api/v1/identify-stamp", json={"image_base64": "abc"})
        assert resp.status_code == 401

    def test_rejects_bad_token(self, client):
        resp = client.post(
            "/api/v1/identify-stamp",
            json={"image_base64": "abc"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    def test_missing_image_returns_error_body(self, client, auth_header):
        resp = client.post("/api/v1/identify-stamp", json={}, headers=auth_header)
        assert resp.status_code == 400
        assert resp.json() == {"error": "image_base64 or image_url required"}

    def test_success_returns_wire_shape(self, client, auth_header):
        with patch(TARGET, new=AsyncMock(return_value=_result())) as mocked:
            resp = client.post("/api/v1/identify-stamp", json={"image_base64": "abc"}, headers=auth_header)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_stamps_detected"] == 1
        assert body["model"] == "qwen-vl-max"
        assert body["provider"] == "qwen"
        assert body["stamps"][0]["name"] == "Penny Black"
        mocked.assert_awaited_once_with("abc", None)

    def test_provider_error_is_relayed(self, client, auth_header):
        with patch(TARGET, new=AsyncMock(side_effect=ProviderHttpError(429, "qwen"))):
            resp = client.post("/api/v1/identify-stamp", json={"image_base64": "abc"}, headers=auth_header)

        assert resp.status_code == 502
        body = resp.json()
        assert body["provider"] == "qwen"
        assert body["provider_status"] == 429
        assert "429" in body["error"]

    @pytest.mark.parametrize(
        "exc, status",
        [
            (ValidationError("Image is 9.0 MB; limit is 4.0 MB"), 400),
            (MissingCredential("qwen", "QWEN_API_KEY"), 500),
            (RequestTimeout(30.0), 504),
            (NetworkError("connection reset"), 502),
        ],
    )
    def test_error_mapping(self, client, auth_header, exc, status):
        with patch(TARGET, new=AsyncMock(side_effect=exc)):
            resp = client.post("/api/v1/identify-stamp", json={"image_url": "https://x.test/a.jpg"}, headers=auth_header)

        assert resp.status_code == status
        assert "error" in resp.json()

    def test_missing_credential_without_mock(self, client, auth_header):
        # No QWEN_API_KEY in the test environment: fails before any network call.
        resp = client.post("/api/v1/identify-stamp", json={"image_base64": "abc"}, headers=auth_header)

        assert resp.status_code == 500
        assert "QWEN_API_KEY" in resp.json()["error"]


class TestModelInfoEndpoint:
    def test_active_provider_info(self, client, monkeypatch):
        from stampid.core.config import get_settings

        monkeypatch.setenv("AI_VISION_PROVIDER", "google")
        get_settings.cache_clear()

        resp = client.get("/api/v1/ai/model-info")

        assert resp.status_code == 200
        assert resp.json() == {
            "provider": "google",
            "display_name": "Google Gemini",
            "model": "gemini-2.5-flash",
            "cost": 0.10,
            "description": "Fast, good quality",
        }


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
