"""Data model for recognized text, field specs and extracted documents."""

from .documents import (
    UNKNOWN,
    DocumentTypeCandidate,
    ExtractedDocument,
    ExtractedField,
    FieldSource,
    FieldSpec,
    RecognizedText,
    SourceDocument,
    Token,
    ValueType,
)
from .wire import BoundingBoxPayload, RecognizedTextPayload

__all__ = [
    "UNKNOWN",
    "BoundingBoxPayload",
    "DocumentTypeCandidate",
    "ExtractedDocument",
    "ExtractedField",
    "FieldSource",
    "FieldSpec",
    "RecognizedText",
    "RecognizedTextPayload",
    "SourceDocument",
    "Token",
    "ValueType",
]
