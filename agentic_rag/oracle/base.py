"""Abstract model oracle interface.

The orchestrator's only outbound boundary. Six asynchronous operations,
none of which touch orchestrator state. Ranking and evaluation have a
defined degraded mode, implemented here so every oracle honours it:

- rank_relevant_chunks falls back to a keyword-overlap filter
- evaluate_sufficiency falls back to a fixed low-confidence evaluation
"""

import logging
from abc import ABC, abstractmethod

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.conversation import ConversationTurn, Source
from agentic_rag.models.generation import Evaluation, GenerationResult
from agentic_rag.retrieval.keyword import keyword_overlap_filter

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 30
FALLBACK_JUSTIFICATION = "evaluation failed"


class OracleError(RuntimeError):
    """Raised when the model backend is unreachable or returns a malformed response."""


def dedupe_sources(sources: list[Source]) -> list[Source]:
    """Drop repeated uris, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for source in sources:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        unique.append(source)
    return unique


class ModelOracle(ABC):
    """Request/response facade over the language model.

    ``history`` arguments always exclude the in-flight user turn.
    """

    @abstractmethod
    async def refine_query(
        self, original_query: str, history: list[ConversationTurn]
    ) -> str:
        """Rewrite the latest query into a standalone search query.

        Raises:
            OracleError: On transport or parsing failure.
        """
        ...

    @abstractmethod
    async def refine_query_with_feedback(
        self,
        original_query: str,
        history: list[ConversationTurn],
        feedback: str,
        justification: str,
    ) -> str:
        """Rewrite the query using human feedback on a low-confidence answer.

        Raises:
            OracleError: On transport or parsing failure.
        """
        ...

    async def rank_relevant_chunks(
        self, query: str, chunks: list[DocumentChunk]
    ) -> list[DocumentChunk]:
        """Return the subsequence of ``chunks`` relevant to ``query``.

        Never raises OracleError: on failure the local keyword filter is used.
        """
        if not chunks:
            return []
        try:
            relevant_ids = set(await self._rank_chunk_ids(query, chunks))
        except OracleError as e:
            logger.warning("Chunk ranking failed, using keyword fallback: %s", e)
            return keyword_overlap_filter(query, chunks)
        return [c for c in chunks if c.id in relevant_ids]

    @abstractmethod
    async def _rank_chunk_ids(
        self, query: str, chunks: list[DocumentChunk]
    ) -> list[str]:
        """Ids of the relevant chunks, in any order."""
        ...

    @abstractmethod
    async def generate_answer(
        self,
        query: str,
        history: list[ConversationTurn],
        internal_context: str,
        use_web_search: bool,
    ) -> GenerationResult:
        """Synthesize an answer, optionally grounded on live web search.

        Raises:
            OracleError: On transport or parsing failure.
        """
        ...

    @abstractmethod
    async def enhance_with_web_search(
        self,
        prior_text: str,
        query: str,
        history: list[ConversationTurn],
        internal_context: str,
    ) -> GenerationResult:
        """Improve an existing answer with fresh web search results.

        Raises:
            OracleError: On transport or parsing failure.
        """
        ...

    async def evaluate_sufficiency(
        self,
        original_query: str,
        answer_text: str,
        history: list[ConversationTurn],
    ) -> Evaluation:
        """Score how well ``answer_text`` answers ``original_query`` (0-100).

        Never raises OracleError: on failure a fixed low-confidence evaluation
        is returned so the workflow always reaches a decision point.
        """
        try:
            return await self._evaluate(original_query, answer_text, history)
        except OracleError as e:
            logger.warning("Sufficiency evaluation failed, using default score: %s", e)
            return Evaluation(
                confidence_score=FALLBACK_CONFIDENCE,
                justification=FALLBACK_JUSTIFICATION,
            )

    @abstractmethod
    async def _evaluate(
        self,
        original_query: str,
        answer_text: str,
        history: list[ConversationTurn],
    ) -> Evaluation:
        ...
