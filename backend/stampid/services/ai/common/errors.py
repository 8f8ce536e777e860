"""Error taxonomy shared by the vision router and the identification layers."""

from __future__ import annotations

from typing import Optional


class StampIDError(Exception):
    pass


class MissingCredential(StampIDError):
    def __init__(self, provider: str, env_var: str = "") -> None:
        self.provider = provider
        self.env_var = env_var
        hint = f" Set {env_var}" if env_var else ""
        super().__init__(f"API key not configured for provider {provider!r}.{hint}")


class UnknownProvider(StampIDError):
    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"Unknown provider: {provider!r}")


class ProviderHttpError(StampIDError):
    def __init__(self, status: int, provider: Optional[str], detail: str = "") -> None:
        self.status = status
        self.provider = provider
        self.detail = detail
        label = provider or "backend"
        msg = f"{label} API error: {status}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class MalformedProviderResponse(StampIDError):
    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        super().__init__(f"Malformed response from {provider!r}: {reason}")


class ValidationError(StampIDError):
    pass


class RequestTimeout(StampIDError):
    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Request timed out after {timeout_seconds:.1f}s")


class NetworkError(StampIDError):
    pass


class MalformedResponse(StampIDError):
    pass
