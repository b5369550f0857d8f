"""Confidence adjustment and review flagging for extracted fields."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional

from ..schemas.documents import ExtractedField

if TYPE_CHECKING:
    from ..extraction.parser import FormParser

DEFAULT_FLOOR = 0.1
CLASSIFICATION_DAMPING_THRESHOLD = 0.8
SOURCE_QUALITY_THRESHOLD = 0.8
SOURCE_QUALITY_PENALTY = 0.2
NEGATIVE_VALUE_PENALTY = 0.3
REVIEW_THRESHOLD = 0.7

UNUSUALLY_HIGH_SUFFIX = " (Unusually High - Please Verify)"
NEEDS_REVIEW_SUFFIX = " (Needs Review)"


def adjust_confidence(value: float, *, floor: float = DEFAULT_FLOOR) -> float:
    """Clamp a confidence into ``[floor, 1.0]``."""
    return round(min(1.0, max(floor, value)), 4)


def append_label_suffix(field: ExtractedField, suffix: str) -> None:
    if suffix not in field.label:
        field.label = f"{field.label}{suffix}"


def damp_by_classification(
    fields: Iterable[ExtractedField],
    classification_confidence: float,
    *,
    threshold: float = CLASSIFICATION_DAMPING_THRESHOLD,
    floor: float = DEFAULT_FLOOR,
) -> List[ExtractedField]:
    """Scale field confidence by an uncertain classification verdict."""
    fields = list(fields)
    if classification_confidence >= threshold:
        return fields
    for item in fields:
        item.confidence = adjust_confidence(item.confidence * classification_confidence, floor=floor)
    return fields


def validate_and_enhance(
    fields: Iterable[ExtractedField],
    source_confidence: float,
    *,
    parser: Optional["FormParser"] = None,
) -> List[ExtractedField]:
    """Apply cross-field checks, quality penalties and review labels in place.

    Only ``confidence`` and ``label`` are changed; values are never touched.
    """
    fields = list(fields)
    if parser is not None:
        fields = parser.check_cross_fields(fields)

    for item in fields:
        if source_confidence < SOURCE_QUALITY_THRESHOLD:
            item.confidence = adjust_confidence(item.confidence - SOURCE_QUALITY_PENALTY)
        if item.is_numeric and item.value < 0:
            item.confidence = adjust_confidence(item.confidence - NEGATIVE_VALUE_PENALTY)
        if item.confidence < REVIEW_THRESHOLD:
            append_label_suffix(item, NEEDS_REVIEW_SUFFIX)
    return fields
