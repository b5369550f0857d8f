"""Type-agnostic extraction used when no form-specific pattern applies."""

from __future__ import annotations

import re
from typing import List

from ..schemas.documents import ExtractedField, RecognizedText
from .coercion import parse_currency

CURRENCY_RE = re.compile(r"\$[\d,]+\.?\d*")
NAME_RE = re.compile(r"[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)+")

NOISE_AMOUNT_CEILING = 100.0
AUTO_DETECTED_CONFIDENCE = 0.6
GENERIC_AMOUNT_CONFIDENCE = 0.5
GENERIC_NAME_CONFIDENCE = 0.4
MAX_GENERIC_NAMES = 3


def extract_auto_detected_amounts(recognized: RecognizedText) -> List[ExtractedField]:
    """Guess wages and federal withholding from the two largest amounts.

    Amounts of 100 or less are treated as noise (box numbers, fees).
    """
    amounts = []
    for match in CURRENCY_RE.finditer(recognized.text or ""):
        value = parse_currency(match.group(0))
        if value is None or value <= NOISE_AMOUNT_CEILING:
            continue
        amounts.append((value, match.group(0)))
    amounts.sort(key=lambda item: item[0], reverse=True)

    slots = [
        ("wages", "Wages (Auto-detected)"),
        ("federalTaxWithheld", "Federal Tax Withheld (Auto-detected)"),
    ]
    return [
        ExtractedField(
            key=key,
            label=label,
            value=value,
            confidence=AUTO_DETECTED_CONFIDENCE,
            source=recognized.source_for(snippet),
        )
        for (key, label), (value, snippet) in zip(slots, amounts)
    ]


def extract_generic_fields(recognized: RecognizedText) -> List[ExtractedField]:
    """Extract whatever looks useful from a document no parser understands."""
    text = recognized.text or ""
    fields = extract_auto_detected_amounts(recognized)

    for index, match in enumerate(NAME_RE.finditer(text)):
        if index >= MAX_GENERIC_NAMES:
            break
        fields.append(
            ExtractedField(
                key=f"name_{index}",
                label=f"Name {index + 1}",
                value=match.group(0).strip(),
                confidence=GENERIC_NAME_CONFIDENCE,
                source=recognized.source_for(match.group(0)),
            )
        )

    index = 0
    for match in CURRENCY_RE.finditer(text):
        value = parse_currency(match.group(0))
        if value is None or value <= 0:
            continue
        fields.append(
            ExtractedField(
                key=f"amount_{index}",
                label=f"Amount {index + 1}",
                value=value,
                confidence=GENERIC_AMOUNT_CONFIDENCE,
                source=recognized.source_for(match.group(0)),
            )
        )
        index += 1
    return fields
