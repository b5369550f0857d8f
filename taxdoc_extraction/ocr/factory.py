from __future__ import annotations

from typing import Optional

from ..settings import PipelineSettings
from .base import TextSourceProvider
from .hybrid import HybridProvider
from .json_text import JsonTextProvider
from .pdf_text import PdfTextLayerProvider
from .remote import TextractProvider, VisionProvider
from .tesseract import TesseractProvider


def build_provider(name: str, settings: PipelineSettings) -> TextSourceProvider:
    if name == "tesseract":
        return TesseractProvider(
            lang=settings.tesseract_lang,
            pdf_dpi=settings.pdf_dpi,
            tesseract_cmd=settings.tesseract_cmd,
        )
    if name == "pdf_text":
        return PdfTextLayerProvider(min_chars=settings.pdf_min_chars)
    if name == "textract":
        return TextractProvider(settings.textract_endpoint, timeout=settings.request_timeout)
    if name == "vision":
        return VisionProvider(settings.vision_endpoint, timeout=settings.request_timeout)
    if name == "json":
        return JsonTextProvider()
    raise ValueError(f"Unknown OCR provider: {name}")


def create_provider(settings: PipelineSettings) -> TextSourceProvider:
    """Build the configured provider, wrapped for fallback and degraded recovery."""
    primary = build_provider(settings.provider, settings)
    secondary: Optional[TextSourceProvider] = None
    if settings.fallback:
        secondary = build_provider(settings.fallback, settings)
    return HybridProvider(primary, secondary, fallback_threshold=settings.fallback_threshold)
