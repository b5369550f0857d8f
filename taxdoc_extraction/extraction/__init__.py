from .coercion import coerce_match, parse_currency, parse_date, parse_text, parse_tin
from .expressions import compile_validator, is_valid_ein, is_valid_ssn
from .fallback import extract_auto_detected_amounts, extract_generic_fields
from .parser import CrossCheck, FormParser

__all__ = [
    "CrossCheck",
    "FormParser",
    "coerce_match",
    "compile_validator",
    "extract_auto_detected_amounts",
    "extract_generic_fields",
    "is_valid_ein",
    "is_valid_ssn",
    "parse_currency",
    "parse_date",
    "parse_text",
    "parse_tin",
]
