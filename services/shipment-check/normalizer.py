"""Reduce an arbitrarily shaped analysis payload to an AnalysisResult.

The analysis webhook has no stable schema: results may come back bare,
wrapped in a list, or nested under envelope keys, and the same value can
appear under several field names. Every lookup below is an explicit probe
over a fixed, ordered list of keys so that the outcome for a given payload
never depends on dict ordering or on which fields happen to be present.

normalize() is total. Whatever it is given, it returns a result.
"""

import math
import re
from typing import Any

from models import AnalysisResult

ENVELOPE_KEYS = ("data", "body", "result", "payload")
NESTED_KEYS = ("analysis", "output", "response")

CONFIDENCE_KEYS = (
    "confidence",
    "confidenceThatPictureIsShipment",
    "confidence_that_picture_is_shipment",
    "confidencePictureShipment",
    "confidenceScore",
    "score",
    "probability",
    "confidence_value",
)
VERDICT_KEYS = ("looksLikeShipment", "isShipment", "shipment")
SUMMARY_KEYS = ("summary", "message", "response", "description")
NOTES_KEYS = ("notes", "detail", "notesText")

VERDICT_THRESHOLD = 0.5

# Plain ASCII decimal with optional exponent; no underscores, hex or other digit sets
NUMERIC_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

ACCEPTED_SUMMARY = "The shipment photo passed the automated check."
REVIEW_SUMMARY = "The shipment photo may need a manual review."


def normalize(payload: Any) -> AnalysisResult:
    """Build an AnalysisResult from a raw JSON value."""
    working = _flatten(unwrap(payload))

    confidence = 0.0
    for key in CONFIDENCE_KEYS:
        value = to_confidence(working.get(key))
        if value > 0:
            confidence = value
            break

    verdict = _first(working, VERDICT_KEYS, to_boolean)
    looks_like_shipment = verdict if verdict is not None else confidence >= VERDICT_THRESHOLD

    summary = _first(working, SUMMARY_KEYS, _text)
    if summary is None:
        summary = ACCEPTED_SUMMARY if looks_like_shipment else REVIEW_SUMMARY

    return AnalysisResult(
        looks_like_shipment=looks_like_shipment,
        confidence=confidence,
        summary=summary,
        notes=_first(working, NOTES_KEYS, _text),
        # Item-level extraction is not done; the field is reserved.
        missing_items=[],
    )


def unwrap(value: Any) -> dict[str, Any]:
    """Peel list and envelope wrappers off a payload.

    A list yields its first element that unwraps to something non-empty.
    A dict is merged with the unwrapped contents of its first envelope key
    (data, body, result, payload); the nested keys win on collision.
    """
    if isinstance(value, list):
        for entry in value:
            result = unwrap(entry)
            if result:
                return result
        return {}

    if isinstance(value, dict):
        merged = dict(value)
        for key in ENVELOPE_KEYS:
            nested = value.get(key)
            if isinstance(nested, (dict, list)):
                merged.update(unwrap(nested))
                return merged
        return merged

    return {}


def _flatten(base: dict[str, Any]) -> dict[str, Any]:
    # Lookups read the working copy, so a later key may come from an earlier merge.
    working = dict(base)
    for key in NESTED_KEYS:
        nested = working.get(key)
        if isinstance(nested, dict):
            working.update(nested)
    return working


def to_confidence(value: Any) -> float:
    """Coerce a number or numeric string to [0, 1]; values above 1 are percentages."""
    if isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str) and NUMERIC_PATTERN.fullmatch(value.strip()):
        raw = value.strip()
    else:
        return 0.0

    try:
        numeric = float(raw)
    except (ValueError, OverflowError):
        return 0.0

    if not math.isfinite(numeric):
        return 0.0
    if numeric > 1:
        numeric /= 100
    return min(max(numeric, 0.0), 1.0)


def to_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first(working: dict[str, Any], keys: tuple[str, ...], coerce) -> Any:
    for key in keys:
        value = coerce(working.get(key))
        if value is not None:
            return value
    return None
