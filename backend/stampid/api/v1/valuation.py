"""Valuation endpoint: deterministic value estimate for one stamp."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from stampid.services.valuation.contracts import CatalogEntry, ValueEstimate
from stampid.services.valuation.engine import confidence_label, estimate

router = APIRouter()


class EstimateRequest(BaseModel):
    estimated_value_low: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    estimated_value_high: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    condition: Optional[str] = None
    rarity: Optional[str] = None
    catalog_match: Optional[CatalogEntry] = None


class EstimateResponse(ValueEstimate):
    confidence_label: str


@router.post("/valuation/estimate", response_model=EstimateResponse)
def estimate_value(body: EstimateRequest):
    result = estimate(
        body.estimated_value_low,
        body.estimated_value_high,
        body.condition,
        body.rarity,
        body.catalog_match,
    )
    return EstimateResponse(
        **result.model_dump(),
        confidence_label=confidence_label(result.confidence_tier),
    )
