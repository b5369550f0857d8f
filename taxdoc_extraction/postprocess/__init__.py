from .confidence import (
    NEEDS_REVIEW_SUFFIX,
    UNUSUALLY_HIGH_SUFFIX,
    adjust_confidence,
    append_label_suffix,
    damp_by_classification,
    validate_and_enhance,
)

__all__ = [
    "NEEDS_REVIEW_SUFFIX",
    "UNUSUALLY_HIGH_SUFFIX",
    "adjust_confidence",
    "append_label_suffix",
    "damp_by_classification",
    "validate_and_enhance",
]
