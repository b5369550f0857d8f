"""Core data model shared by every pipeline stage."""

from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

BBox = Tuple[float, float, float, float]
FieldValue = Union[str, float, None]

UNKNOWN = "UNKNOWN"


class ValueType(str, Enum):
    CURRENCY = "currency"
    TEXT = "text"
    SSN = "ssn"
    EIN = "ein"
    DATE = "date"


@dataclass(frozen=True)
class SourceDocument:
    """Raw document handle passed to text source providers."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: str | Path) -> "SourceDocument":
        p = Path(path)
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(filename=p.name, content=p.read_bytes(), content_type=content_type)

    @property
    def suffix(self) -> str:
        return Path(self.filename).suffix.lower()

    @property
    def is_pdf(self) -> bool:
        return self.suffix == ".pdf" or self.content_type == "application/pdf" or self.content[:5] == b"%PDF-"


@dataclass(frozen=True)
class Token:
    text: str
    bbox: BBox
    confidence: float
    page: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "bbox": list(self.bbox), "confidence": self.confidence}


@dataclass(frozen=True)
class RecognizedText:
    """Text recovered from one document, with document-level confidence."""

    text: str
    confidence: float
    tokens: Tuple[Token, ...] = ()

    def find_token(self, snippet: str) -> Optional[Token]:
        """First token whose text is contained in, or contains, ``snippet``."""
        if not snippet:
            return None
        for token in self.tokens:
            if token.text and (token.text in snippet or snippet in token.text):
                return token
        return None

    def source_for(self, snippet: str) -> "FieldSource":
        token = self.find_token(snippet)
        if token is None:
            return FieldSource(text_snippet=snippet)
        return FieldSource(page=token.page, bbox=token.bbox, text_snippet=snippet)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize into the provider contract JSON layout."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "boundingBoxes": [token.to_dict() for token in self.tokens],
        }


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    patterns: Tuple[re.Pattern[str], ...]
    value_type: ValueType
    required: bool = False
    validator: Optional[Callable[[Any], bool]] = None


@dataclass
class FieldSource:
    document_id: str = ""
    page: int = 1
    bbox: Optional[BBox] = None
    text_snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"documentId": self.document_id, "page": self.page}
        if self.bbox is not None:
            data["bbox"] = list(self.bbox)
        if self.text_snippet is not None:
            data["textSnippet"] = self.text_snippet
        return data


@dataclass
class ExtractedField:
    key: str
    label: str
    value: FieldValue
    confidence: float
    source: Optional[FieldSource] = None

    @property
    def is_numeric(self) -> bool:
        return isinstance(self.value, (int, float)) and not isinstance(self.value, bool)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.key,
            "label": self.label,
            "value": self.value,
            "confidence": self.confidence,
        }
        if self.source is not None:
            data["source"] = self.source.to_dict()
        return data


@dataclass(frozen=True)
class DocumentTypeCandidate:
    type: str
    filename_patterns: Tuple[re.Pattern[str], ...]
    content_patterns: Tuple[re.Pattern[str], ...]
    base_confidence: float


@dataclass
class ExtractedDocument:
    document_id: str
    type: str
    fields: List[ExtractedField] = field(default_factory=list)

    def get(self, key: str) -> Optional[ExtractedField]:
        for item in self.fields:
            if item.key == key:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Map into the JSON layout consumed by draft-return aggregation."""
        return {
            "documentId": self.document_id,
            "type": self.type,
            "fields": [item.to_dict() for item in self.fields],
        }
