"""Identification contracts: result models and legacy/modern shape migration.

The backend may answer with the modern ``MultiStampResult`` or with the
legacy bare ``StampIdentificationResult``. ``parse_backend_shape`` turns a
decoded body into exactly one of ``ModernShape`` / ``LegacyShape`` and
``normalize`` maps both onto ``MultiStampResult``.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..common.errors import MalformedResponse

logger = logging.getLogger(__name__)

StampCategory = Literal["definitive", "commemorative", "airmail", "special", "other"]
StampCondition = Literal["mint", "mint_hinged", "used", "damaged"]
StampRarity = Literal["common", "uncommon", "rare", "very_rare"]
ImageQuality = Literal["good", "fair", "poor", "unknown"]

VALID_CATEGORIES = frozenset({"definitive", "commemorative", "airmail", "special", "other"})
VALID_CONDITIONS = frozenset({"mint", "mint_hinged", "used", "damaged"})
VALID_RARITIES = frozenset({"common", "uncommon", "rare", "very_rare"})
VALID_IMAGE_QUALITIES = frozenset({"good", "fair", "poor", "unknown"})

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _coerce_choice(value: Any, allowed: frozenset[str], field_name: str) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    if v in allowed:
        return v
    logger.warning("Identification: dropping unknown %s value %r", field_name, value)
    return None


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            num = float(value)
        except OverflowError:
            return None
    else:
        match = _NUMBER_RE.search(str(value).replace(",", ""))
        if not match:
            return None
        num = float(match.group())
    # json.loads turns 1e999 into inf; treat it like a missing number.
    return num if math.isfinite(num) else None


class BoundingBox(BaseModel):
    """Stamp location in the source image; 0–1 coordinates when ``normalized``."""

    x: float
    y: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    normalized: bool = True


class StampIdentificationResult(BaseModel):
    """One identified stamp."""

    model_config = ConfigDict(extra="ignore")

    identified: bool
    confidence: float = 0.0
    name: str = ""
    country: Optional[str] = None
    year_issued: Optional[int] = None
    catalog_number: Optional[str] = None
    denomination: Optional[str] = None
    category: Optional[StampCategory] = None
    theme: Optional[str] = None
    condition: Optional[StampCondition] = None
    condition_notes: Optional[str] = None
    estimated_value_low: Optional[float] = None
    estimated_value_high: Optional[float] = None
    currency: str = "USD"
    description: Optional[str] = None
    rarity: Optional[StampRarity] = None
    bounding_box: Optional[BoundingBox] = None
    model_used: Optional[str] = None
    error: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        num = _coerce_number(v)
        if num is None:
            return 0.0
        return max(0.0, min(100.0, num))

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("year_issued", mode="before")
    @classmethod
    def _year(cls, v: Any) -> Optional[int]:
        num = _coerce_number(v)
        return int(num) if num is not None else None

    @field_validator("estimated_value_low", "estimated_value_high", mode="before")
    @classmethod
    def _value(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @field_validator("catalog_number", "denomination", mode="before")
    @classmethod
    def _text_or_none(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> Optional[str]:
        return _coerce_choice(v, VALID_CATEGORIES, "category")

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v: Any) -> Optional[str]:
        return _coerce_choice(v, VALID_CONDITIONS, "condition")

    @field_validator("rarity", mode="before")
    @classmethod
    def _rarity(cls, v: Any) -> Optional[str]:
        return _coerce_choice(v, VALID_RARITIES, "rarity")

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v: Any) -> str:
        if not v:
            return "USD"
        return str(v).strip().upper()


class MultiStampResult(BaseModel):
    """Every stamp detected in one image."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    stamps: list[StampIdentificationResult] = Field(default_factory=list)
    total_detected: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("total_detected", "total_stamps_detected"),
        serialization_alias="total_stamps_detected",
    )
    image_quality: ImageQuality = "unknown"
    suggestions: Optional[str] = None
    model_used: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("model_used", "model"),
        serialization_alias="model",
    )
    provider: Optional[str] = None
    partial_detection: bool = False
    parse_error: bool = False
    raw: Optional[str] = None

    @field_validator("image_quality", mode="before")
    @classmethod
    def _image_quality(cls, v: Any) -> str:
        return _coerce_choice(v, VALID_IMAGE_QUALITIES, "image_quality") or "unknown"

    @model_validator(mode="after")
    def _count_matches_stamps(self) -> "MultiStampResult":
        count = len(self.stamps)
        if self.total_detected is None:
            self.total_detected = count
        elif self.total_detected != count and not self.partial_detection:
            logger.warning(
                "Identification: total_stamps_detected=%s but %s stamps returned, using %s",
                self.total_detected,
                count,
                count,
            )
            self.total_detected = count
        return self

    def to_wire(self) -> dict[str, Any]:
        """Snake-case wire body as served by the identification backend."""
        return self.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# Backend response shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModernShape:
    result: MultiStampResult


@dataclass(frozen=True)
class LegacyShape:
    result: StampIdentificationResult


BackendShape = Union[ModernShape, LegacyShape]


def parse_backend_shape(body: Any) -> BackendShape:
    """Classify a decoded backend body; anything but the two known shapes is rejected."""
    if not isinstance(body, dict):
        raise MalformedResponse(f"expected a JSON object, got {type(body).__name__}")

    try:
        if "stamps" in body:
            if not isinstance(body["stamps"], list):
                raise MalformedResponse("'stamps' is not a list")
            return ModernShape(MultiStampResult.model_validate(body))
        if "identified" in body:
            return LegacyShape(StampIdentificationResult.model_validate(body))
    except PydanticValidationError as exc:
        raise MalformedResponse(f"invalid identification payload: {exc.error_count()} error(s)") from exc

    raise MalformedResponse("body has neither 'stamps' nor 'identified'")


def normalize(shape: BackendShape) -> MultiStampResult:
    if isinstance(shape, ModernShape):
        return shape.result
    if isinstance(shape, LegacyShape):
        return MultiStampResult(
            stamps=[shape.result],
            total_detected=1,
            image_quality="good",
            model_used=shape.result.model_used,
        )
    raise MalformedResponse(f"unsupported shape {type(shape).__name__}")


def normalize_identification(body: Any) -> MultiStampResult:
    return normalize(parse_backend_shape(body))
