"""In-memory registry of form parsers keyed by document type."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from .extraction.parser import FormParser
from .loader import FormTable, load_form_tables

logger = logging.getLogger(__name__)


class ParserRegistry:
    """Indexes form parsers by document type."""

    def __init__(self, tables: Mapping[str, FormTable] | None = None) -> None:
        source_tables = tables if tables is not None else load_form_tables()
        self._parsers: Dict[str, FormParser] = {}
        for doc_type, table in source_tables.items():
            self.register(
                FormParser(doc_type, table.get("fields") or (), table.get("cross_checks") or ())
            )

    def register(self, parser: FormParser) -> FormParser:
        if parser.doc_type in self._parsers:
            logger.info("Replacing parser for %s", parser.doc_type)
        self._parsers[parser.doc_type] = parser
        return parser

    def get_parser(self, doc_type: str | None) -> Optional[FormParser]:
        if not doc_type:
            return None
        return self._parsers.get(doc_type)

    @property
    def supported_types(self) -> List[str]:
        return list(self._parsers)

    @classmethod
    def from_parsers(cls, parsers: Iterable[FormParser]) -> "ParserRegistry":
        registry = cls(tables={})
        for parser in parsers:
            registry.register(parser)
        return registry


def build_default_registry() -> ParserRegistry:
    """Construct a registry using the on-disk form tables."""
    return ParserRegistry()
