"""In-memory chunk store backing the session's local knowledge base."""

import logging
from collections.abc import Iterable, Iterator

from agentic_rag.models.chunk import DocumentChunk

logger = logging.getLogger(__name__)


class ChunkStore:
    """Ordered, session-scoped collection of document chunks.

    Each ingestion batch replaces the whole collection; there is no
    incremental merge.
    """

    def __init__(self, chunks: Iterable[DocumentChunk] = ()):
        self._chunks: tuple[DocumentChunk, ...] = tuple(chunks)

    def replace(self, chunks: Iterable[DocumentChunk]) -> int:
        """Swap in a new chunk set and return its size."""
        self._chunks = tuple(chunks)
        logger.info("Chunk store now holds %d chunks", len(self._chunks))
        return len(self._chunks)

    def clear(self) -> None:
        self._chunks = ()

    def all(self) -> list[DocumentChunk]:
        return list(self._chunks)

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[DocumentChunk]:
        return iter(self._chunks)

    def __bool__(self) -> bool:
        return bool(self._chunks)
