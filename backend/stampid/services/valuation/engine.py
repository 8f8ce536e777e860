"""Stamp valuation rules (deterministic, no AI).

value = base range × condition multiplier × rarity multiplier, rounded to
cents. A catalog match replaces the AI-estimated base range with
±20 % around the catalog value and upgrades the confidence tier.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from .contracts import CatalogEntry, ConfidenceTier, RarityTier, SimpleCondition, ValueEstimate

logger = logging.getLogger(__name__)

CURRENCY = "USD"

CATALOG_LOW_FACTOR = 0.8
CATALOG_HIGH_FACTOR = 1.2
MISSING_HIGH_FACTOR = 1.5

CONDITION_MULTIPLIERS: dict[SimpleCondition, float] = {
    SimpleCondition.MINT: 1.0,
    SimpleCondition.EXCELLENT: 0.75,
    SimpleCondition.GOOD: 0.5,
    SimpleCondition.FAIR: 0.25,
    SimpleCondition.POOR: 0.1,
}

RARITY_MULTIPLIERS: dict[RarityTier, float] = {
    RarityTier.COMMON: 1.0,
    RarityTier.UNCOMMON: 1.5,
    RarityTier.RARE: 3.0,
    RarityTier.VERY_RARE: 7.0,
    RarityTier.LEGENDARY: 20.0,
}

# App vocabulary + philatelic grades -> simple tier.
CONDITION_MAPPING: dict[str, SimpleCondition] = {
    "mint": SimpleCondition.MINT,
    "mint_hinged": SimpleCondition.EXCELLENT,
    "used": SimpleCondition.GOOD,
    "damaged": SimpleCondition.POOR,
    "superb": SimpleCondition.MINT,
    "extremely_fine": SimpleCondition.MINT,
    "very_fine": SimpleCondition.EXCELLENT,
    "fine": SimpleCondition.GOOD,
    "very_good": SimpleCondition.FAIR,
    "good": SimpleCondition.FAIR,
    "fair": SimpleCondition.POOR,
    "poor": SimpleCondition.POOR,
}

CONDITION_LABELS: dict[SimpleCondition, str] = {
    SimpleCondition.MINT: "Mint",
    SimpleCondition.EXCELLENT: "Excellent",
    SimpleCondition.GOOD: "Good",
    SimpleCondition.FAIR: "Fair",
    SimpleCondition.POOR: "Poor",
}

RARITY_LABELS: dict[RarityTier, str] = {
    RarityTier.COMMON: "Common",
    RarityTier.UNCOMMON: "Uncommon",
    RarityTier.RARE: "Rare",
    RarityTier.VERY_RARE: "Very Rare",
    RarityTier.LEGENDARY: "Legendary",
}

CONFIDENCE_LABELS: dict[ConfidenceTier, str] = {
    ConfidenceTier.AI_ESTIMATE: "AI Estimate",
    ConfidenceTier.USER_VERIFIED: "User Verified",
    ConfidenceTier.CATALOG_MATCH: "Catalog Match",
    ConfidenceTier.AUCTION_DATA: "Market Price",
}


def round2(value: float) -> float:
    """Round half up to cents."""
    return math.floor(value * 100 + 0.5) / 100


def map_to_simple_condition(condition: Optional[str]) -> SimpleCondition:
    """Case-insensitive condition lookup; unknown or empty -> ``good``."""
    if not condition:
        return SimpleCondition.GOOD
    return CONDITION_MAPPING.get(condition.strip().lower(), SimpleCondition.GOOD)


def resolve_rarity(rarity: Optional[str]) -> RarityTier:
    if not rarity:
        return RarityTier.COMMON
    try:
        return RarityTier(str(rarity).strip().lower())
    except ValueError:
        logger.warning("Valuation: unknown rarity %r treated as common", rarity)
        return RarityTier.COMMON


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or math.isfinite(value):
        return value
    logger.warning("Valuation: ignoring non-finite base value %r", value)
    return None


def _base_range(
    base_low: Optional[float],
    base_high: Optional[float],
    catalog_match: Optional[CatalogEntry],
) -> tuple[float, float]:
    if catalog_match is not None:
        return (
            catalog_match.base_value_usd * CATALOG_LOW_FACTOR,
            catalog_match.base_value_usd * CATALOG_HIGH_FACTOR,
        )

    base_low, base_high = _finite_or_none(base_low), _finite_or_none(base_high)
    low = base_low if base_low is not None else 0.0
    high = base_high if base_high is not None else low * MISSING_HIGH_FACTOR
    low, high = max(low, 0.0), max(high, 0.0)
    if high < low:
        low, high = high, low
    return low, high


def confidence_for(catalog_match: Optional[CatalogEntry]) -> ConfidenceTier:
    if catalog_match is None:
        return ConfidenceTier.AI_ESTIMATE
    if catalog_match.source == "auction_data":
        return ConfidenceTier.AUCTION_DATA
    return ConfidenceTier.CATALOG_MATCH


def estimate(
    base_low: Optional[float],
    base_high: Optional[float],
    condition: Optional[str],
    rarity: Optional[str],
    catalog_match: Optional[CatalogEntry] = None,
) -> ValueEstimate:
    """Compute a value estimate. Never raises; ``average == 0`` means unknown."""
    low_base, high_base = _base_range(base_low, base_high, catalog_match)

    condition_factor = CONDITION_MULTIPLIERS[map_to_simple_condition(condition)]
    rarity_factor = RARITY_MULTIPLIERS[resolve_rarity(rarity)]

    low_value = low_base * condition_factor * rarity_factor
    high_value = high_base * condition_factor * rarity_factor
    # Cents rounding needs value * 100 to stay finite.
    if not (math.isfinite(low_value * 100) and math.isfinite(high_value * 100)):
        logger.warning("Valuation: range %r..%r overflows, value unknown", low_base, high_base)
        low_value = high_value = 0.0

    low = round2(low_value)
    high = round2(high_value)

    return ValueEstimate(
        low=low,
        high=high,
        average=(low + high) / 2,
        currency=CURRENCY,
        confidence_tier=confidence_for(catalog_match),
        condition_factor=condition_factor,
        rarity_factor=rarity_factor,
        catalog_matched=catalog_match is not None,
    )


def condition_label(condition: SimpleCondition | str) -> str:
    return CONDITION_LABELS[SimpleCondition(condition)]


def rarity_label(rarity: RarityTier | str) -> str:
    return RARITY_LABELS[RarityTier(rarity)]


def confidence_label(tier: ConfidenceTier | str) -> str:
    return CONFIDENCE_LABELS[ConfidenceTier(tier)]
