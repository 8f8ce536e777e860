from datetime import datetime, timedelta, timezone

import jwt
import pytest

from stampid.core.config import get_settings

TEST_JWT_SECRET = "super-secret-jwt-key-for-testing-only-32chars"

# Start every test from defaults: nothing from the developer's shell leaks in.
_CLEARED_ENV = (
    "AI_VISION_PROVIDER",
    "AI_VISION_MODEL",
    "AI_MAX_TOKENS",
    "AI_TEMPERATURE",
    "AI_DEBUG_STORE_RAW",
    "QWEN_API_KEY",
    "DEEPSEEK_API_KEY",
    "MISTRAL_API_KEY",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "IDENTIFY_STAMP_URL",
    "EXPO_PUBLIC_AI_API_URL",
    "IDENTIFY_TIMEOUT_MS",
    "MAX_IMAGE_SIZE_MB",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_JWT_AUDIENCE",
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    # Settings are lru_cached; clear around every test so env patches apply.
    for key in _CLEARED_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def build_auth_header(sub: str = "00000000-0000-0000-0000-000000000001") -> dict:
    payload = {
        "sub": sub,
        "email": "tests@example.com",
        "aud": "authenticated",
        "iat": int(datetime.now(timezone.utc).timestamp()),
        "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
    }
    token = jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_header() -> dict:
    return build_auth_header()
