"""Weighted pattern scoring over filename and recognized text."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from ..schemas.documents import UNKNOWN, DocumentTypeCandidate

logger = logging.getLogger(__name__)

FILENAME_WEIGHT = 0.4
CONTENT_WEIGHT = 0.6
MIN_CLASSIFICATION_SCORE = 0.3
UNKNOWN_CONFIDENCE = 0.1


class DocumentClassifier:
    def __init__(self, candidates: Iterable[DocumentTypeCandidate]) -> None:
        self.candidates: List[DocumentTypeCandidate] = list(candidates)
        types = [candidate.type for candidate in self.candidates]
        if UNKNOWN in types:
            raise ValueError(f"{UNKNOWN} is reserved and cannot be a classification candidate")
        if len(types) != len(set(types)):
            raise ValueError("Duplicate document types in classification table")

    def supported_types(self) -> List[str]:
        return [candidate.type for candidate in self.candidates]

    def score(self, candidate: DocumentTypeCandidate, filename: str, text: str) -> float:
        filename_hits = sum(1 for pattern in candidate.filename_patterns if pattern.search(filename or ""))
        content_hits = sum(1 for pattern in candidate.content_patterns if pattern.search(text or ""))
        raw = FILENAME_WEIGHT * filename_hits + CONTENT_WEIGHT * content_hits
        return min(raw, 1.0) * candidate.base_confidence

    def classify(self, filename: str, text: str) -> Tuple[str, float]:
        """Return ``(document_type, confidence)`` for a document.

        Ties go to the candidate declared first. Scores below the minimum
        yield ``("UNKNOWN", 0.1)``.
        """
        best: Optional[DocumentTypeCandidate] = None
        best_score = 0.0
        for candidate in self.candidates:
            current = self.score(candidate, filename, text)
            if best is None or current > best_score:
                best, best_score = candidate, current

        if best is None or best_score < MIN_CLASSIFICATION_SCORE:
            logger.info("Could not classify %s (best score %.2f)", filename, best_score)
            return UNKNOWN, UNKNOWN_CONFIDENCE

        logger.info("Classified %s as %s (%.2f)", filename, best.type, best_score)
        return best.type, best_score
