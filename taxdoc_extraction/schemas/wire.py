from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .documents import RecognizedText, Token


class BoundingBoxPayload(BaseModel):
    text: str = ""
    bbox: Tuple[float, float, float, float]
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    page: int = Field(default=1, ge=1)


class RecognizedTextPayload(BaseModel):
    """Recognized text as returned by a remote recognition endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    bounding_boxes: List[BoundingBoxPayload] = Field(default_factory=list, alias="boundingBoxes")

    def to_recognized_text(self) -> RecognizedText:
        tokens = tuple(
            Token(text=box.text, bbox=box.bbox, confidence=box.confidence, page=box.page)
            for box in self.bounding_boxes
        )
        return RecognizedText(text=self.text, confidence=self.confidence, tokens=tokens)
