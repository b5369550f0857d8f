"""Primary provider with low-confidence fallback and degraded recovery."""

from __future__ import annotations

import logging
from typing import Optional

from ..schemas.documents import RecognizedText, SourceDocument
from .base import ProviderError, TextSourceProvider

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_THRESHOLD = 0.7
DEGRADED_CONFIDENCE = 0.1


def degraded_result(filename: str) -> RecognizedText:
    return RecognizedText(
        text=f"Unable to extract text from {filename}. Please verify the document is clear and readable.",
        confidence=DEGRADED_CONFIDENCE,
        tokens=(),
    )


class HybridProvider(TextSourceProvider):
    """Runs ``primary`` and consults ``secondary`` only when confidence is low.

    The higher-confidence result wins, primary on ties. When the primary
    raises, a degraded low-confidence result is returned instead of an error.
    """

    name = "hybrid"

    def __init__(
        self,
        primary: TextSourceProvider,
        secondary: Optional[TextSourceProvider] = None,
        *,
        fallback_threshold: float = DEFAULT_FALLBACK_THRESHOLD,
    ) -> None:
        super().__init__()
        self.primary = primary
        self.secondary = secondary
        self.fallback_threshold = fallback_threshold

    async def _setup(self) -> None:
        # Unavailable delegates are retried on first use; failures surface there.
        for provider in (self.primary, self.secondary):
            if provider is None:
                continue
            try:
                await provider.initialize()
            except ProviderError as exc:
                logger.warning("Provider %s unavailable: %s", provider.name, exc)

    async def _teardown(self) -> None:
        try:
            await self.primary.terminate()
        finally:
            if self.secondary is not None:
                await self.secondary.terminate()

    async def _extract(self, document: SourceDocument) -> RecognizedText:
        try:
            result = await self.primary.extract_text(document)
        except Exception as exc:
            logger.warning("%s failed on %s, returning degraded result: %s", self.primary.name, document.filename, exc)
            return degraded_result(document.filename)

        if self.secondary is None or result.confidence >= self.fallback_threshold:
            return result

        logger.info(
            "%s confidence %.2f below %.2f for %s; trying %s",
            self.primary.name,
            result.confidence,
            self.fallback_threshold,
            document.filename,
            self.secondary.name,
        )
        try:
            alternative = await self.secondary.extract_text(document)
        except Exception as exc:
            logger.warning("Fallback %s failed on %s: %s", self.secondary.name, document.filename, exc)
            return result

        return alternative if alternative.confidence > result.confidence else result
