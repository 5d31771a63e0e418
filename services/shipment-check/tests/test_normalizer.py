"""Tests for payload unwrapping and normalization."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from normalizer import (
    ACCEPTED_SUMMARY,
    REVIEW_SUMMARY,
    normalize,
    to_boolean,
    to_confidence,
    unwrap,
)


class TestToConfidence:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (85, 0.85),
            ("42", 0.42),
            (0.3, 0.3),
            (-5, 0.0),
            (150, 1.0),
            (1, 1.0),
            (" 73.5 ", 0.735),
        ],
    )
    def test_values(self, raw, expected):
        assert to_confidence(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "   ", "high", True, False, [], {}, float("nan"), "inf", 10**400])
    def test_non_numeric_is_zero(self, raw):
        assert to_confidence(raw) == 0.0

    @pytest.mark.parametrize(
        "raw, expected",
        [("4.2e1", 0.42), (".5", 0.5), ("+85", 0.85), ("5.", 0.05)],
    )
    def test_plain_decimal_strings(self, raw, expected):
        assert to_confidence(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["1_0", "٤٢", "0x1A", "Infinity", "1e999", "12%", "1 2"])
    def test_non_decimal_strings_are_zero(self, raw):
        assert to_confidence(raw) == 0.0


class TestToBoolean:
    def test_literal(self):
        assert to_boolean(True) is True
        assert to_boolean(False) is False

    def test_strings_case_insensitive(self):
        assert to_boolean(" TRUE ") is True
        assert to_boolean("False") is False

    @pytest.mark.parametrize("raw", ["yes", "1", 1, 0, None, ""])
    def test_other_values_undefined(self, raw):
        assert to_boolean(raw) is None


class TestUnwrap:
    def test_scalar(self):
        assert unwrap("text") == {}
        assert unwrap(None) == {}
        assert unwrap(42) == {}

    def test_list_takes_first_non_empty(self):
        assert unwrap([None, [], {"score": 10}, {"score": 20}]) == {"score": 10}

    def test_empty_list(self):
        assert unwrap([]) == {}

    def test_nested_wins_on_collision(self):
        result = unwrap({"summary": "outer", "data": {"summary": "inner"}})
        assert result["summary"] == "inner"

    def test_only_first_envelope_followed(self):
        result = unwrap({"body": {"confidence": 10}, "data": {"confidence": 20}})
        assert result["confidence"] == 20

    def test_envelope_holding_list(self):
        result = unwrap({"data": [{"confidence": 55}]})
        assert result["confidence"] == 55

    def test_scalar_envelope_is_skipped(self):
        result = unwrap({"data": "nope", "result": {"score": 3}})
        assert result["score"] == 3

    def test_does_not_mutate_input(self):
        payload = {"data": {"score": 3}}
        unwrap(payload)
        assert payload == {"data": {"score": 3}}


class TestNormalize:
    @pytest.mark.parametrize("payload", [None, "", "garbage", 0, [], {}, [[]], {"data": None}, {"confidence": "n/a"}])
    def test_total_on_malformed_input(self, payload):
        result = normalize(payload)
        assert result.confidence == 0
        assert result.looks_like_shipment is False
        assert result.summary == REVIEW_SUMMARY
        assert result.notes is None
        assert result.missing_items == []

    def test_verdict_defaults_from_confidence(self):
        assert normalize({"confidence": 60}).looks_like_shipment is True
        assert normalize({"confidence": 40}).looks_like_shipment is False

    def test_threshold_is_inclusive(self):
        assert normalize({"confidence": 0.5}).looks_like_shipment is True

    def test_explicit_verdict_overrides_confidence(self):
        result = normalize({"confidence": 95, "isShipment": "false"})
        assert result.looks_like_shipment is False
        assert result.confidence == pytest.approx(0.95)

    def test_verdict_priority(self):
        result = normalize({"shipment": False, "looksLikeShipment": True})
        assert result.looks_like_shipment is True

    def test_invalid_verdict_falls_through(self):
        result = normalize({"looksLikeShipment": "maybe", "shipment": "TRUE"})
        assert result.looks_like_shipment is True

    def test_envelope_unwrapping(self):
        result = normalize({"data": {"result": {"confidence": 90, "shipment": True}}})
        assert result.confidence == pytest.approx(0.9)
        assert result.looks_like_shipment is True

    def test_n8n_style_list_of_items(self):
        payload = [{}, {"body": {"output": {"confidenceScore": "77", "summary": " Boxes visible "}}}]
        result = normalize(payload)
        assert result.confidence == pytest.approx(0.77)
        assert result.summary == "Boxes visible"

    def test_confidence_priority_skips_non_positive(self):
        result = normalize({"confidence": 0, "score": "abc", "probability": 0.64, "confidence_value": 99})
        assert result.confidence == pytest.approx(0.64)

    def test_alternate_confidence_names(self):
        result = normalize({"confidence_that_picture_is_shipment": 81})
        assert result.confidence == pytest.approx(0.81)

    def test_nested_analysis_overrides_outer(self):
        result = normalize({"confidence": 10, "analysis": {"confidence": 80}})
        assert result.confidence == pytest.approx(0.8)

    def test_nested_keys_processed_in_order(self):
        payload = {
            "analysis": {"summary": "from analysis"},
            "output": {"summary": "from output"},
        }
        assert normalize(payload).summary == "from output"

    def test_response_object_is_flattened_not_summary(self):
        result = normalize({"response": {"message": "Looks fine", "score": 88}})
        assert result.summary == "Looks fine"
        assert result.confidence == pytest.approx(0.88)

    def test_response_string_used_as_summary(self):
        assert normalize({"response": "Plain answer", "confidence": 0.2}).summary == "Plain answer"

    def test_summary_priority_and_blank_skipped(self):
        payload = {"summary": "   ", "message": "", "description": "Described"}
        assert normalize(payload).summary == "Described"

    def test_default_affirmative_summary(self):
        assert normalize({"confidence": 0.9}).summary == ACCEPTED_SUMMARY

    def test_notes(self):
        assert normalize({"notes": " ", "detail": " Label torn "}).notes == "Label torn"
        assert normalize({"notesText": "Extra"}).notes == "Extra"

    def test_missing_items_always_empty(self):
        result = normalize({"missingItems": ["crate"], "confidence": 0.8})
        assert result.missing_items == []

    def test_result_is_immutable(self):
        result = normalize({"confidence": 0.8})
        with pytest.raises(Exception):
            result.confidence = 0.1
