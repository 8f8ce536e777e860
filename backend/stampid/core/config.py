from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )

    # --- Vision provider selection ---
    ai_vision_provider: str = Field(
        default="qwen",
        validation_alias=AliasChoices("AI_VISION_PROVIDER", "ai_vision_provider"),
    )
    ai_vision_model: str = Field(
        default="",
        validation_alias=AliasChoices("AI_VISION_MODEL", "ai_vision_model"),
    )
    ai_max_tokens: int = Field(default=2000, ge=1)
    ai_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    ai_debug_store_raw: bool = False

    qwen_api_key: str = ""
    deepseek_api_key: str = ""
    mistral_api_key: str = ""
    google_api_key: str = ""
    openai_api_key: str = ""

    # --- Identification backend (app side) ---
    identify_stamp_url: str = Field(
        default="",
        validation_alias=AliasChoices("IDENTIFY_STAMP_URL", "EXPO_PUBLIC_AI_API_URL", "identify_stamp_url"),
    )
    identify_timeout_ms: int = Field(default=30000, gt=0)
    max_image_size_mb: float = Field(default=4.0, gt=0)

    # --- Supabase (fallback RPC + session token verification) ---
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["Authorization", "Content-Type"])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ai_vision_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def provider_credentials(self) -> dict[str, str]:
        return {
            "qwen": self.qwen_api_key,
            "deepseek": self.deepseek_api_key,
            "pixtral": self.mistral_api_key,
            "google": self.google_api_key,
            "openai": self.openai_api_key,
        }

    @property
    def identify_timeout_seconds(self) -> float:
        return self.identify_timeout_ms / 1000.0

    @property
    def max_image_size_bytes(self) -> int:
        return int(self.max_image_size_mb * 1024 * 1024)


@lru_cache

def get_settings() -> Settings:
    return Settings()
