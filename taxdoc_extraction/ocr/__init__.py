from .base import ExtractionFailed, ProviderError, SourceUnavailable, TextSourceProvider
from .factory import build_provider, create_provider
from .hybrid import HybridProvider, degraded_result
from .json_text import JsonTextProvider
from .pdf_text import PdfTextLayerProvider
from .remote import TextractProvider, VisionProvider
from .tesseract import TesseractProvider

__all__ = [
    "ExtractionFailed",
    "HybridProvider",
    "JsonTextProvider",
    "PdfTextLayerProvider",
    "ProviderError",
    "SourceUnavailable",
    "TesseractProvider",
    "TextSourceProvider",
    "TextractProvider",
    "VisionProvider",
    "build_provider",
    "create_provider",
    "degraded_result",
]
