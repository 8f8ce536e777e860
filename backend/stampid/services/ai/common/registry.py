"""Provider registry: static provider catalogue + active selection and credentials."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from stampid.core.config import Settings, get_settings

from .errors import MissingCredential, UnknownProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    cost: float
    description: str


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    base_url: str
    models: Mapping[str, ModelSpec]
    env_key: str

    @property
    def default_model(self) -> str:
        return next(iter(self.models))


PROVIDERS: Mapping[str, ProviderSpec] = MappingProxyType(
    {
        "qwen": ProviderSpec(
            name="Qwen (Alibaba)",
            base_url="https://dashscope.aliyuncs.com/compatible-mode/v1",
            models={
                "qwen-vl-max": ModelSpec(0.41, "Flagship vision model"),
                "qwen2.5-vl-72b-instruct": ModelSpec(0.15, "Best open-weight VLM"),
                "qwen2.5-vl-7b-instruct": ModelSpec(0.05, "Lightweight, fast"),
            },
            env_key="QWEN_API_KEY",
        ),
        "deepseek": ProviderSpec(
            name="DeepSeek",
            base_url="https://api.deepseek.com/v1",
            models={
                "deepseek-vl2": ModelSpec(0.15, "Best for charts/diagrams"),
                "deepseek-vl": ModelSpec(0.15, "General vision"),
            },
            env_key="DEEPSEEK_API_KEY",
        ),
        "pixtral": ProviderSpec(
            name="Pixtral (Mistral)",
            base_url="https://api.mistral.ai/v1",
            models={
                "pixtral-12b-2409": ModelSpec(0.10, "Lightweight, Apache 2.0"),
                "pixtral-large-latest": ModelSpec(0.50, "124B params, best quality"),
            },
            env_key="MISTRAL_API_KEY",
        ),
        "google": ProviderSpec(
            name="Google Gemini",
            base_url="https://generativelanguage.googleapis.com/v1beta",
            models={
                "gemini-2.5-flash": ModelSpec(0.10, "Fast, good quality"),
                "gemini-2.5-pro": ModelSpec(1.25, "Best quality"),
            },
            env_key="GOOGLE_API_KEY",
        ),
        "openai": ProviderSpec(
            name="OpenAI",
            base_url="https://api.openai.com/v1",
            models={
                "gpt-4o-mini": ModelSpec(0.15, "Cheapest OpenAI vision"),
                "gpt-4o": ModelSpec(2.50, "Best OpenAI vision"),
            },
            env_key="OPENAI_API_KEY",
        ),
    }
)


@dataclass(frozen=True)
class ProviderConnection:
    """Everything a wire strategy needs to reach one provider."""

    provider: str
    name: str
    base_url: str
    model: str
    credential: str


@dataclass(frozen=True)
class ModelInfo:
    provider: str
    display_name: str
    model: str
    cost: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class ProviderRegistry:
    """Immutable snapshot of the provider configuration.

    Built once (usually via :meth:`from_settings`) and handed to the
    ``VisionRouter``; swapping credentials means building a new registry.
    """

    active_provider: str
    credentials: Mapping[str, str]
    model_override: str = ""

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ProviderRegistry":
        settings = settings or get_settings()
        return cls(
            active_provider=settings.ai_vision_provider,
            credentials=MappingProxyType(dict(settings.provider_credentials)),
            model_override=settings.ai_vision_model.strip(),
        )

    def _model_for(self, provider_id: str, spec: ProviderSpec) -> str:
        # The override only applies to the active provider; other providers
        # keep their own default model.
        if self.model_override and provider_id == self.active_provider:
            return self.model_override
        return spec.default_model

    def resolve_provider(self, provider_id: str | None = None) -> ProviderConnection:
        """Return connection facts for *provider_id* (default: active provider).

        Raises ``UnknownProvider`` / ``MissingCredential`` without touching
        the network.
        """
        pid = (provider_id or self.active_provider).lower().strip()
        spec = PROVIDERS.get(pid)
        if spec is None:
            raise UnknownProvider(pid)

        credential = (self.credentials.get(pid) or "").strip()
        if not credential:
            logger.warning("Credential for provider %r is not configured (%s)", pid, spec.env_key)
            raise MissingCredential(pid, spec.env_key)

        return ProviderConnection(
            provider=pid,
            name=spec.name,
            base_url=spec.base_url,
            model=self._model_for(pid, spec),
            credential=credential,
        )

    def model_info(self, provider_id: str | None = None) -> ModelInfo:
        """Display info for a provider; falls back to the raw id when unmapped."""
        pid = provider_id or self.active_provider
        spec = PROVIDERS.get(pid.lower().strip())
        if spec is None:
            return ModelInfo(provider=pid, display_name=pid, model="")

        model = self._model_for(pid.lower().strip(), spec)
        model_spec = spec.models.get(model)
        return ModelInfo(
            provider=pid.lower().strip(),
            display_name=spec.name,
            model=model,
            cost=model_spec.cost if model_spec else 0.0,
            description=model_spec.description if model_spec else "",
        )
