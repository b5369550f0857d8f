"""Document extraction pipeline: recognize, classify, parse, score."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .classification.classifier import DocumentClassifier
from .extraction.fallback import extract_generic_fields
from .loader import load_document_types
from .ocr.base import TextSourceProvider
from .ocr.factory import create_provider
from .postprocess.confidence import damp_by_classification, validate_and_enhance
from .registry import ParserRegistry, build_default_registry
from .schemas.documents import ExtractedDocument, ExtractedField, FieldSource, SourceDocument
from .settings import PipelineSettings, load_settings

logger = logging.getLogger(__name__)

BatchItem = Union[SourceDocument, Tuple[SourceDocument, str]]


class ParseFailed(Exception):
    """Raised when a document cannot be turned into extracted fields."""


def _stamp_document_id(fields: Iterable[ExtractedField], document_id: str) -> None:
    for item in fields:
        if item.source is None:
            item.source = FieldSource(document_id=document_id)
        else:
            item.source.document_id = document_id


class DocumentPipeline:
    """Runs documents through a text source, the classifier and the form parsers.

    The pipeline holds no state between documents. Use ``async with`` to
    acquire the provider once for a batch of calls and release it afterwards.
    """

    def __init__(
        self,
        provider: TextSourceProvider,
        classifier: Optional[DocumentClassifier] = None,
        registry: Optional[ParserRegistry] = None,
    ) -> None:
        self.provider = provider
        self.classifier = classifier or DocumentClassifier(load_document_types())
        self.registry = registry or build_default_registry()

    def set_provider(self, provider: TextSourceProvider) -> None:
        logger.info("Switching text source from %s to %s", self.provider.name, provider.name)
        self.provider = provider

    def supported_types(self) -> List[str]:
        return self.classifier.supported_types()

    async def __aenter__(self) -> "DocumentPipeline":
        await self.provider.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.provider.terminate()

    async def parse_document(self, document: SourceDocument, document_id: Optional[str] = None) -> ExtractedDocument:
        document_id = document_id or uuid.uuid4().hex
        try:
            recognized = await self.provider.extract_text(document)
            doc_type, classification_confidence = self.classifier.classify(document.filename, recognized.text)

            parser = self.registry.get_parser(doc_type)
            if parser is not None:
                fields = parser.parse(recognized)
                fields = damp_by_classification(fields, classification_confidence)
            else:
                logger.info("No parser for %s; using generic extraction for %s", doc_type, document.filename)
                fields = extract_generic_fields(recognized)

            _stamp_document_id(fields, document_id)
            fields = validate_and_enhance(fields, recognized.confidence, parser=parser)

            if parser is not None:
                missing = parser.missing_required(fields)
                if missing:
                    logger.info("%s (%s) missing required fields: %s", document.filename, doc_type, ", ".join(missing))
        except Exception as exc:
            raise ParseFailed(f"Failed to parse document: {exc}") from exc

        logger.info("Parsed %s as %s with %d fields", document.filename, doc_type, len(fields))
        return ExtractedDocument(document_id=document_id, type=doc_type, fields=fields)

    async def parse_multiple_documents(
        self,
        items: Sequence[BatchItem],
        timeout: Optional[float] = None,
    ) -> List[ExtractedDocument]:
        """Parse documents concurrently; failed or timed-out documents are omitted.

        Successful results keep the input order.
        """
        pairs = [item if isinstance(item, tuple) else (item, None) for item in items]

        async def _run(document: SourceDocument, document_id: Optional[str]) -> ExtractedDocument:
            if timeout is None:
                return await self.parse_document(document, document_id)
            return await asyncio.wait_for(self.parse_document(document, document_id), timeout)

        outcomes = await asyncio.gather(*(_run(doc, doc_id) for doc, doc_id in pairs), return_exceptions=True)

        results: List[ExtractedDocument] = []
        for (document, _), outcome in zip(pairs, outcomes):
            if isinstance(outcome, ExtractedDocument):
                results.append(outcome)
            elif isinstance(outcome, asyncio.TimeoutError):
                logger.warning("Omitting %s: timed out after %ss", document.filename, timeout)
            elif isinstance(outcome, BaseException):
                logger.warning("Omitting %s: %s", document.filename, outcome)
        if len(results) < len(pairs):
            logger.warning("Parsed %d of %d documents", len(results), len(pairs))
        return results


def build_default_pipeline(settings: Optional[PipelineSettings] = None) -> DocumentPipeline:
    """Construct a pipeline from the on-disk configuration and form tables."""
    settings = settings or load_settings()
    return DocumentPipeline(
        provider=create_provider(settings),
        classifier=DocumentClassifier(load_document_types()),
        registry=build_default_registry(),
    )
