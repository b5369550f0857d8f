"""Local OCR through Tesseract."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError
from PIL import Image

from ..schemas.documents import RecognizedText, SourceDocument, Token
from .base import ExtractionFailed, SourceUnavailable, TextSourceProvider

logger = logging.getLogger(__name__)


def _page_tokens(data: Dict[str, List[Any]], size: Tuple[int, int], page: int) -> Tuple[str, List[Token], List[float]]:
    """Rebuild page text and tokens from ``image_to_data`` output."""
    width, height = size
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    tokens: List[Token] = []
    confidences: List[float] = []

    for i, raw_text in enumerate(data.get("text", [])):
        text = (raw_text or "").strip()
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            conf = -1.0
        if not text:
            continue
        line_key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(line_key, []).append(text)
        if conf < 0:
            continue
        confidences.append(conf)
        bbox = (
            100.0 * data["left"][i] / width if width else 0.0,
            100.0 * data["top"][i] / height if height else 0.0,
            100.0 * data["width"][i] / width if width else 0.0,
            100.0 * data["height"][i] / height if height else 0.0,
        )
        tokens.append(Token(text=text, bbox=bbox, confidence=round(conf / 100.0, 4), page=page))

    page_text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    return page_text, tokens, confidences


class TesseractProvider(TextSourceProvider):
    name = "tesseract"

    def __init__(self, *, lang: str = "eng", pdf_dpi: int = 200, tesseract_cmd: Optional[str] = None) -> None:
        super().__init__()
        self.lang = lang
        self.pdf_dpi = pdf_dpi
        self.tesseract_cmd = tesseract_cmd

    async def _setup(self) -> None:
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except pytesseract.TesseractNotFoundError as exc:
            raise SourceUnavailable(f"tesseract binary not found: {exc}") from exc
        logger.info("Using tesseract %s", version)

    async def _extract(self, document: SourceDocument) -> RecognizedText:
        # One recognition at a time per engine.
        async with self._loop_lock("ocr"):
            return await asyncio.to_thread(self._recognize, document)

    def _load_images(self, document: SourceDocument) -> List[Image.Image]:
        if document.is_pdf:
            try:
                return convert_from_bytes(document.content, dpi=self.pdf_dpi)
            except PDFInfoNotInstalledError as exc:
                raise SourceUnavailable(f"poppler is required to rasterize {document.filename}: {exc}") from exc
        try:
            image = Image.open(BytesIO(document.content))
            image.load()
        except (OSError, ValueError) as exc:
            raise ExtractionFailed(f"Unsupported image {document.filename}: {exc}") from exc
        return [image]

    def _recognize(self, document: SourceDocument) -> RecognizedText:
        images = self._load_images(document)
        page_texts: List[str] = []
        tokens: List[Token] = []
        confidences: List[float] = []
        try:
            for page, image in enumerate(images, start=1):
                data = pytesseract.image_to_data(image, lang=self.lang, output_type=pytesseract.Output.DICT)
                text, page_tokens, page_confidences = _page_tokens(data, image.size, page)
                page_texts.append(text)
                tokens.extend(page_tokens)
                confidences.extend(page_confidences)
        finally:
            for image in images:
                image.close()

        confidence = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0
        logger.info(
            "Tesseract read %s: %d pages, %d words, confidence %.2f",
            document.filename,
            len(images),
            len(tokens),
            confidence,
        )
        return RecognizedText(
            text="\n".join(page_texts),
            confidence=round(min(1.0, max(0.0, confidence)), 4),
            tokens=tuple(tokens),
        )
