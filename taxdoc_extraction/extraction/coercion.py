"""Typed coercion of matched text into field values.

Every coercer returns ``None`` when the candidate must be rejected; the parser
then moves on to the next pattern.
"""

from __future__ import annotations

import math
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Union

from ..schemas.documents import ValueType

_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_DATE_RE = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4}|\d{2})(?!\d)")


def parse_currency(raw: str) -> Optional[float]:
    """Parse an amount such as ``$44,629.35`` or ``(1,200.00)``."""
    if raw is None:
        return None
    cleaned = re.sub(r"[$,\s]", "", str(raw))
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = f"-{cleaned[1:-1]}"
    if not cleaned or not _NUMBER_RE.fullmatch(cleaned):
        return None
    try:
        value = float(Decimal(cleaned))
    except (InvalidOperation, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_tin(raw: str) -> Optional[str]:
    """Normalize an SSN or EIN to its 9 digits."""
    digits = re.sub(r"\D", "", str(raw or ""))
    return digits if len(digits) == 9 else None


def parse_date(raw: str) -> Optional[str]:
    match = _DATE_RE.search(str(raw or ""))
    if not match:
        return None
    month, day, year = match.groups()
    if len(year) == 2:
        year = f"20{year}"
    try:
        parsed = date(int(year), int(month), int(day))
    except ValueError:
        return None
    return parsed.isoformat()


def parse_text(raw: str) -> Optional[str]:
    text = str(raw or "").strip()
    return text or None


COERCERS: Dict[ValueType, Callable[[str], Union[str, float, None]]] = {
    ValueType.CURRENCY: parse_currency,
    ValueType.TEXT: parse_text,
    ValueType.SSN: parse_tin,
    ValueType.EIN: parse_tin,
    ValueType.DATE: parse_date,
}


def captured_text(match: re.Match[str]) -> str:
    """First capture group, or the whole match when there is none."""
    if match.re.groups and match.group(1) is not None:
        return match.group(1)
    return match.group(0)


def coerce_match(match: re.Match[str], value_type: ValueType) -> Union[str, float, None]:
    return COERCERS[value_type](captured_text(match))
