"""Classification and structured field extraction for scanned tax documents."""

from .classification import DocumentClassifier
from .pipeline import DocumentPipeline, ParseFailed, build_default_pipeline
from .registry import ParserRegistry, build_default_registry
from .schemas import ExtractedDocument, ExtractedField, RecognizedText, SourceDocument
from .settings import PipelineSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "DocumentClassifier",
    "DocumentPipeline",
    "ExtractedDocument",
    "ExtractedField",
    "ParseFailed",
    "ParserRegistry",
    "PipelineSettings",
    "RecognizedText",
    "SourceDocument",
    "build_default_pipeline",
    "build_default_registry",
    "load_settings",
]
