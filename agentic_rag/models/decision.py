"""Pending human decision created when a draft answer scores below threshold."""

from dataclasses import dataclass

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.conversation import ConversationTurn, Source
from agentic_rag.models.enums import RemedialAction

ALL_ACTIONS = frozenset(RemedialAction)


@dataclass(frozen=True)
class PendingHumanDecision:
    """Everything needed to resume a suspended workflow.

    Never mutated: another sub-threshold round replaces the whole object.
    ``chat_history`` is the ledger snapshot taken at suspension time, and
    ``retrieved_chunks`` are the chunks that ``internal_context`` was built from.
    """

    current_response: str
    confidence: int
    justification: str
    original_query: str
    refined_query: str
    internal_context: str
    chat_history: tuple[ConversationTurn, ...]
    available_actions: frozenset[RemedialAction] = ALL_ACTIONS
    sources: tuple[Source, ...] = ()
    retrieved_chunks: tuple[DocumentChunk, ...] = ()

    def __post_init__(self):
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence must be between 0 and 100, got {self.confidence}")
        object.__setattr__(self, "chat_history", tuple(self.chat_history))
        object.__setattr__(self, "available_actions", frozenset(self.available_actions))
        object.__setattr__(self, "sources", tuple(self.sources))
        object.__setattr__(self, "retrieved_chunks", tuple(self.retrieved_chunks))
