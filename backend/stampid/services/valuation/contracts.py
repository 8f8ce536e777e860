"""Contracts for stamp valuation: catalog references and value estimates."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SimpleCondition(StrEnum):
    MINT = "mint"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class RarityTier(StrEnum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    VERY_RARE = "very_rare"
    LEGENDARY = "legendary"


class ConfidenceTier(StrEnum):
    AI_ESTIMATE = "ai_estimate"
    USER_VERIFIED = "user_verified"
    CATALOG_MATCH = "catalog_match"
    AUCTION_DATA = "auction_data"


CatalogSource = Literal["manual", "user_submission", "auction_data"]


class CatalogEntry(BaseModel):
    """Verified reference record for a known stamp (read-only here)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    scott_number: Optional[str] = None
    michel_number: Optional[str] = None
    name: str = ""
    country: str = ""
    year_issued: Optional[int] = None
    base_value_usd: float = Field(ge=0, allow_inf_nan=False)
    rarity: RarityTier = RarityTier.COMMON
    verified: bool = False
    source: CatalogSource = "manual"


class ValueEstimate(BaseModel):
    """Final value plus the factors it was derived from."""

    model_config = ConfigDict(frozen=True)

    low: float = Field(ge=0)
    high: float = Field(ge=0)
    average: float = Field(ge=0)
    currency: str = "USD"
    confidence_tier: ConfidenceTier = ConfidenceTier.AI_ESTIMATE
    condition_factor: float
    rarity_factor: float
    catalog_matched: bool = False

    @model_validator(mode="after")
    def _ordered(self) -> "ValueEstimate":
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")
        return self

    @property
    def is_unknown(self) -> bool:
        """Zero average is the "value unknown" sentinel."""
        return self.average == 0
