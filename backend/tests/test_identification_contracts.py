"""Tests for identification contracts and backend shape migration."""

from __future__ import annotations

import pytest

from stampid.services.ai.common.errors import MalformedResponse
from stampid.services.ai.common.json_tools import extract_json
from stampid.services.ai.identification.contracts import (
    LegacyShape,
    ModernShape,
    MultiStampResult,
    StampIdentificationResult,
    normalize,
    normalize_identification,
    parse_backend_shape,
)

PENNY_BLACK = {
    "identified": True,
    "confidence": 80,
    "name": "Penny Black",
    "country": "United Kingdom",
    "year_issued": 1840,
    "catalog_number": "SG 2",
    "denomination": "1d",
    "category": "definitive",
    "theme": "Queen Victoria",
    "condition": "used",
    "condition_notes": "Four margins, red Maltese cross",
    "estimated_value_low": 100.0,
    "estimated_value_high": 400.0,
    "currency": "GBP",
    "description": "World's first adhesive postage stamp",
    "rarity": "uncommon",
}


class TestStampIdentificationResult:
    def test_full_payload(self):
        stamp = StampIdentificationResult.model_validate(PENNY_BLACK)
        assert stamp.name == "Penny Black"
        assert stamp.year_issued == 1840
        assert stamp.condition == "used"
        assert stamp.bounding_box is None

    def test_unknown_enum_values_become_null(self):
        stamp = StampIdentificationResult.model_validate(
            {"identified": True, "category": "definitive-ish", "condition": "Mint Hinged", "rarity": "legendary"}
        )
        assert stamp.category is None
        assert stamp.condition == "mint_hinged"
        assert stamp.rarity is None

    def test_numbers_from_text(self):
        stamp = StampIdentificationResult.model_validate(
            {
                "identified": True,
                "confidence": "92",
                "year_issued": "c. 1935",
                "estimated_value_low": "$1,250.50",
                "estimated_value_high": "n/a",
            }
        )
        assert stamp.confidence == 92
        assert stamp.year_issued == 1935
        assert stamp.estimated_value_low == 1250.5
        assert stamp.estimated_value_high is None

    def test_confidence_clamped(self):
        assert StampIdentificationResult(identified=True, confidence=140).confidence == 100
        assert StampIdentificationResult(identified=True, confidence=-3).confidence == 0

    def test_non_finite_numbers_become_null(self):
        stamp = StampIdentificationResult(
            identified=True,
            confidence=float("inf"),
            year_issued=float("inf"),
            estimated_value_low=float("nan"),
            estimated_value_high=10**400,
        )

        assert stamp.confidence == 0
        assert stamp.year_issued is None
        assert stamp.estimated_value_low is None
        assert stamp.estimated_value_high is None

    def test_currency_defaults_to_usd(self):
        assert StampIdentificationResult(identified=False, currency=None).currency == "USD"

    def test_bounding_box(self):
        stamp = StampIdentificationResult.model_validate(
            {"identified": True, "bounding_box": {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}}
        )
        assert stamp.bounding_box.normalized is True
        assert stamp.bounding_box.width == 0.3


class TestMultiStampResult:
    def test_wire_aliases(self):
        result = MultiStampResult.model_validate(
            {"stamps": [PENNY_BLACK], "total_stamps_detected": 1, "image_quality": "fair", "model": "qwen-vl-max"}
        )
        assert result.total_detected == 1
        assert result.model_used == "qwen-vl-max"

        wire = result.to_wire()
        assert wire["total_stamps_detected"] == 1
        assert wire["model"] == "qwen-vl-max"
        assert wire["stamps"][0]["name"] == "Penny Black"

    def test_missing_count_defaults_to_stamp_count(self):
        result = MultiStampResult.model_validate({"stamps": [PENNY_BLACK, PENNY_BLACK]})
        assert result.total_detected == 2

    def test_mismatched_count_is_corrected(self):
        result = MultiStampResult.model_validate({"stamps": [PENNY_BLACK], "total_stamps_detected": 4})
        assert result.total_detected == 1

    def test_partial_detection_keeps_reported_count(self):
        result = MultiStampResult.model_validate(
            {"stamps": [PENNY_BLACK], "total_stamps_detected": 4, "partial_detection": True}
        )
        assert result.total_detected == 4

    def test_unknown_image_quality(self):
        assert MultiStampResult.model_validate({"stamps": [], "image_quality": "blurry"}).image_quality == "unknown"


class TestShapeMigration:
    def test_modern_shape(self):
        shape = parse_backend_shape({"stamps": [PENNY_BLACK], "total_stamps_detected": 1, "image_quality": "good"})
        assert isinstance(shape, ModernShape)
        assert normalize(shape).stamps[0].name == "Penny Black"

    def test_legacy_shape_is_wrapped(self):
        body = {"identified": True, "confidence": 80, "name": "X", "model_used": "gpt-4o"}

        shape = parse_backend_shape(body)
        result = normalize(shape)

        assert isinstance(shape, LegacyShape)
        assert result.total_detected == 1
        assert result.image_quality == "good"
        assert len(result.stamps) == 1
        assert result.stamps[0].name == "X"
        assert result.stamps[0].confidence == 80
        assert result.model_used == "gpt-4o"

    def test_body_with_both_keys_is_modern(self):
        shape = parse_backend_shape({"identified": True, "stamps": []})
        assert isinstance(shape, ModernShape)

    def test_empty_modern_result(self):
        result = normalize_identification({"stamps": [], "total_stamps_detected": 0, "image_quality": "poor"})
        assert result.stamps == []
        assert result.total_detected == 0
        assert result.image_quality == "poor"

    @pytest.mark.parametrize(
        "body",
        [
            {"error": "something"},
            {"name": "Penny Black"},
            {"stamps": "none"},
            {"stamps": [{"name": "missing identified flag"}]},
            [PENNY_BLACK],
            "stamps",
            None,
        ],
    )
    def test_other_shapes_are_rejected(self, body):
        with pytest.raises(MalformedResponse):
            normalize_identification(body)

    def test_overflowing_year_in_model_text(self):
        text = '{"identified": true, "confidence": 80, "name": "X", "year_issued": 1e999}'

        result = normalize_identification(extract_json(text))

        assert result.total_detected == 1
        assert result.stamps[0].name == "X"
        assert result.stamps[0].year_issued is None

    def test_normalize_rejects_foreign_object(self):
        with pytest.raises(MalformedResponse):
            normalize(object())  # type: ignore[arg-type]
