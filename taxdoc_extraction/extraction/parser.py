"""Pattern-driven field extraction for one tax form type."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..postprocess.confidence import UNUSUALLY_HIGH_SUFFIX, adjust_confidence, append_label_suffix
from ..schemas.documents import ExtractedField, FieldSpec, RecognizedText
from .coercion import coerce_match
from .fallback import extract_auto_detected_amounts

logger = logging.getLogger(__name__)

DEFAULT_FIELD_CONFIDENCE = 0.8


@dataclass(frozen=True)
class CrossCheck:
    """Flags ``field`` when it exceeds ``max_ratio`` of the ``gross`` field."""

    field: str
    gross: str
    max_ratio: float = 0.5
    penalty: float = 0.4
    floor: float = 0.3


class FormParser:
    """Extracts the declared fields of one document type from recognized text.

    Field specs are tried in declaration order; within a spec the first pattern
    whose match survives coercion and validation wins. ``required`` is advisory
    and only surfaces through :meth:`missing_required`.
    """

    def __init__(
        self,
        doc_type: str,
        field_specs: Iterable[FieldSpec],
        cross_checks: Iterable[CrossCheck] = (),
    ) -> None:
        self.doc_type = doc_type
        self.field_specs: List[FieldSpec] = list(field_specs)
        self.cross_checks: List[CrossCheck] = list(cross_checks)
        keys = [spec.key for spec in self.field_specs]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate field keys in parser for {doc_type}")

    def __repr__(self) -> str:
        return f"FormParser({self.doc_type!r}, fields={len(self.field_specs)})"

    def parse(self, recognized: RecognizedText) -> List[ExtractedField]:
        fields: List[ExtractedField] = []
        for spec in self.field_specs:
            extracted = self.extract_field(spec, recognized)
            if extracted is not None:
                fields.append(extracted)

        if not fields:
            logger.info("No %s fields matched; falling back to auto-detected amounts", self.doc_type)
            fields = extract_auto_detected_amounts(recognized)
        return fields

    def extract_field(self, spec: FieldSpec, recognized: RecognizedText) -> Optional[ExtractedField]:
        for pattern in spec.patterns:
            match = pattern.search(recognized.text)
            if not match:
                continue
            value = coerce_match(match, spec.value_type)
            if value is None:
                logger.debug("Rejected %s candidate %r: coercion failed", spec.key, match.group(0))
                continue
            if spec.validator is not None and not spec.validator(value):
                logger.debug("Rejected %s candidate %r: validation failed", spec.key, value)
                continue

            return ExtractedField(
                key=spec.key,
                label=spec.label,
                value=value,
                confidence=DEFAULT_FIELD_CONFIDENCE,
                source=recognized.source_for(match.group(0)),
            )
        return None

    def check_cross_fields(self, fields: List[ExtractedField]) -> List[ExtractedField]:
        by_key = {item.key: item for item in fields}
        for check in self.cross_checks:
            target = by_key.get(check.field)
            gross = by_key.get(check.gross)
            if target is None or gross is None:
                continue
            if not (target.is_numeric and gross.is_numeric):
                continue
            if target.value <= 0 or gross.value <= 0:
                continue
            if target.value > gross.value * check.max_ratio:
                logger.info(
                    "%s %s=%s exceeds %.0f%% of %s=%s",
                    self.doc_type,
                    check.field,
                    target.value,
                    check.max_ratio * 100,
                    check.gross,
                    gross.value,
                )
                target.confidence = adjust_confidence(target.confidence - check.penalty, floor=check.floor)
                append_label_suffix(target, UNUSUALLY_HIGH_SUFFIX)
        return fields

    def missing_required(self, fields: Iterable[ExtractedField]) -> List[str]:
        present = {item.key for item in fields}
        return [spec.key for spec in self.field_specs if spec.required and spec.key not in present]
