"""Restricted evaluation of validator expressions declared in form tables."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


def stripped(value: Any) -> str:
    """Strip non-digit characters from a string."""
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def is_valid_ssn(value: Any) -> bool:
    digits = stripped(value)
    if len(digits) != 9:
        return False
    area, group, serial = digits[:3], digits[3:5], digits[5:]
    if area in {"000", "666", "999"}:
        return False
    if group == "00" or serial == "0000":
        return False
    return True


def is_valid_ein(value: Any) -> bool:
    digits = stripped(value)
    if len(digits) != 9:
        return False
    if digits[:2] in {"00", "99"}:
        return False
    # Rejects repeated-digit placeholders such as 11-1111111.
    if len(set(digits)) == 1:
        return False
    return True


_ALLOWED: Dict[str, Any] = {
    "__builtins__": {},
    "abs": abs,
    "len": len,
    "min": min,
    "max": max,
    "round": round,
    "stripped": stripped,
    "is_valid_ssn": is_valid_ssn,
    "is_valid_ein": is_valid_ein,
    "True": True,
    "False": False,
    "None": None,
}


def compile_validator(condition: str) -> Callable[[Any], bool]:
    """Turn a condition string into a predicate over ``value``.

    Syntax errors surface immediately so a broken form table fails at load
    time; runtime errors while evaluating count as a failed validation.
    """
    code = compile(condition, "<validator>", "eval")

    def _validator(value: Any) -> bool:
        try:
            return bool(eval(code, dict(_ALLOWED), {"value": value}))
        except Exception:
            logger.debug("Validator %r raised for value %r", condition, value)
            return False

    return _validator
