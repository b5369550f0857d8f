"""Documents that already carry recognized text as JSON."""

from __future__ import annotations

import json

from pydantic import ValidationError

from ..schemas.documents import RecognizedText, SourceDocument
from ..schemas.wire import RecognizedTextPayload
from .base import ExtractionFailed, TextSourceProvider


class JsonTextProvider(TextSourceProvider):
    """Reads ``{text, confidence, boundingBoxes}`` JSON, e.g. cached OCR output."""

    name = "json"

    async def _extract(self, document: SourceDocument) -> RecognizedText:
        try:
            data = json.loads(document.content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ExtractionFailed(f"{document.filename} is not recognized-text JSON: {exc}") from exc
        try:
            return RecognizedTextPayload.model_validate(data).to_recognized_text()
        except ValidationError as exc:
            raise ExtractionFailed(f"{document.filename} does not match the recognized-text contract: {exc}") from exc
