"""Network-backed OCR services reached over HTTP."""

from __future__ import annotations

import asyncio
import base64
import logging
from abc import abstractmethod
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from ..schemas.documents import RecognizedText, SourceDocument
from ..schemas.wire import RecognizedTextPayload
from .base import ExtractionFailed, SourceUnavailable, TextSourceProvider

logger = logging.getLogger(__name__)


class RemoteProvider(TextSourceProvider):
    """Posts a document to an OCR endpoint that answers with recognized-text JSON."""

    name = "remote"

    def __init__(self, endpoint: Optional[str], *, timeout: float = 30.0) -> None:
        super().__init__()
        self.endpoint = endpoint
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    async def _setup(self) -> None:
        if not self.endpoint:
            raise SourceUnavailable(f"No endpoint configured for the {self.name} provider")
        self._session = requests.Session()

    async def _teardown(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    @abstractmethod
    def _request_kwargs(self, document: SourceDocument) -> Dict[str, Any]:
        """Keyword arguments for ``Session.post`` carrying the document."""

    def _post(self, document: SourceDocument) -> Any:
        session = self._session
        if session is None:
            raise SourceUnavailable(f"{self.name} session was closed before {document.filename} was sent")
        try:
            resp = session.post(self.endpoint, timeout=self.timeout, **self._request_kwargs(document))
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise ExtractionFailed(f"{self.name} request failed for {document.filename}: {exc}") from exc
        except ValueError as exc:
            raise ExtractionFailed(f"{self.name} returned invalid JSON for {document.filename}") from exc

    async def _extract(self, document: SourceDocument) -> RecognizedText:
        data = await asyncio.to_thread(self._post, document)
        try:
            payload = RecognizedTextPayload.model_validate(data)
        except ValidationError as exc:
            raise ExtractionFailed(f"{self.name} response did not match the recognized-text contract: {exc}") from exc
        logger.info("%s read %s with confidence %.2f", self.name, document.filename, payload.confidence)
        return payload.to_recognized_text()


class TextractProvider(RemoteProvider):
    name = "textract"

    def _request_kwargs(self, document: SourceDocument) -> Dict[str, Any]:
        content_type = document.content_type or "application/octet-stream"
        return {"files": {"document": (document.filename, document.content, content_type)}}


class VisionProvider(RemoteProvider):
    name = "vision"
    features = ["TEXT_DETECTION", "DOCUMENT_TEXT_DETECTION"]

    def _request_kwargs(self, document: SourceDocument) -> Dict[str, Any]:
        encoded = base64.b64encode(document.content).decode("ascii")
        return {"json": {"image": encoded, "features": list(self.features)}}
