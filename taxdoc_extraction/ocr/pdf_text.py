"""Text layer extraction for born-digital PDFs."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import List, Tuple

import pdfplumber
from PyPDF2 import PdfReader

from ..schemas.documents import RecognizedText, SourceDocument, Token
from .base import ExtractionFailed, TextSourceProvider

logger = logging.getLogger(__name__)

TEXT_LAYER_CONFIDENCE = 0.99
MISSING_TEXT_LAYER_CONFIDENCE = 0.2


class PdfTextLayerProvider(TextSourceProvider):
    """Reads the embedded text layer; scanned PDFs come back low-confidence."""

    name = "pdf_text"

    def __init__(self, *, min_chars: int = 50) -> None:
        super().__init__()
        self.min_chars = min_chars

    async def _extract(self, document: SourceDocument) -> RecognizedText:
        if not document.is_pdf:
            raise ExtractionFailed(f"{document.filename} is not a PDF")
        return await asyncio.to_thread(self._read, document)

    def _read_pdfplumber(self, content: bytes) -> Tuple[str, List[Token]]:
        pages: List[str] = []
        tokens: List[Token] = []
        with pdfplumber.open(BytesIO(content)) as pdf:
            for page_no, page in enumerate(pdf.pages, start=1):
                pages.append(page.extract_text() or "")
                width, height = float(page.width or 0), float(page.height or 0)
                for word in page.extract_words():
                    if not width or not height:
                        continue
                    bbox = (
                        100.0 * float(word["x0"]) / width,
                        100.0 * float(word["top"]) / height,
                        100.0 * (float(word["x1"]) - float(word["x0"])) / width,
                        100.0 * (float(word["bottom"]) - float(word["top"])) / height,
                    )
                    tokens.append(Token(text=word["text"], bbox=bbox, confidence=TEXT_LAYER_CONFIDENCE, page=page_no))
        return "\n".join(pages), tokens

    def _read_pypdf2(self, content: bytes) -> str:
        reader = PdfReader(BytesIO(content))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    def _read(self, document: SourceDocument) -> RecognizedText:
        text, tokens = "", []
        try:
            text, tokens = self._read_pdfplumber(document.content)
        except Exception as exc:
            logger.warning("pdfplumber extraction failed for %s: %s", document.filename, exc)

        if len(text.strip()) < self.min_chars:
            try:
                text = self._read_pypdf2(document.content) or text
            except Exception as exc:
                logger.warning("PyPDF2 extraction failed for %s: %s", document.filename, exc)

        has_layer = len("".join(text.split())) >= self.min_chars
        confidence = TEXT_LAYER_CONFIDENCE if has_layer else MISSING_TEXT_LAYER_CONFIDENCE
        if not has_layer:
            logger.info("%s has no usable text layer", document.filename)
        return RecognizedText(text=text, confidence=confidence, tokens=tuple(tokens))
