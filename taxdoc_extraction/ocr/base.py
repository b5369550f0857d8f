"""Text source provider contract shared by every OCR backend."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from ..schemas.documents import RecognizedText, SourceDocument

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base class for text source failures."""


class SourceUnavailable(ProviderError):
    """The provider cannot be initialized (missing engine, endpoint or binary)."""


class ExtractionFailed(ProviderError):
    """Recognition raised while processing a document."""


class TextSourceProvider(ABC):
    """Turns a document into recognized text.

    Providers that hold an engine or a connection initialize lazily on first
    use; ``terminate()`` releases it and a later call initializes again.
    Use as ``async with provider:`` to scope the engine lifetime explicitly.
    """

    name = "base"

    def __init__(self) -> None:
        self._locks: Dict[str, Tuple[asyncio.AbstractEventLoop, asyncio.Lock]] = {}
        self._initialized = False

    def _loop_lock(self, name: str) -> asyncio.Lock:
        """Lock bound to the running event loop, rebuilt when the loop changes."""
        loop = asyncio.get_running_loop()
        current = self._locks.get(name)
        if current is None or current[0] is not loop:
            current = (loop, asyncio.Lock())
            self._locks[name] = current
        return current[1]

    @property
    def lock(self) -> asyncio.Lock:
        return self._loop_lock("lifecycle")

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        async with self.lock:
            if self._initialized:
                return
            await self._setup()
            self._initialized = True
            logger.debug("Initialized %s provider", self.name)

    async def terminate(self) -> None:
        async with self.lock:
            if not self._initialized:
                return
            try:
                await self._teardown()
            finally:
                self._initialized = False
                logger.debug("Terminated %s provider", self.name)

    async def extract_text(self, document: SourceDocument) -> RecognizedText:
        if not self._initialized:
            await self.initialize()
        try:
            return await self._extract(document)
        except ProviderError:
            raise
        except Exception as exc:
            raise ExtractionFailed(f"{self.name} failed on {document.filename}: {exc}") from exc

    async def _setup(self) -> None:
        """Acquire engine state; raise ``SourceUnavailable`` when impossible."""

    async def _teardown(self) -> None:
        """Release engine state."""

    @abstractmethod
    async def _extract(self, document: SourceDocument) -> RecognizedText:
        raise NotImplementedError

    async def __aenter__(self) -> "TextSourceProvider":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.terminate()
