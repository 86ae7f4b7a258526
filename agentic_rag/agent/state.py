"""Agent state definition for the LangGraph workflow."""

from dataclasses import dataclass
from typing import TypedDict

from agentic_rag.agent.ledger import ConversationLedger
from agentic_rag.agent.registry import AgentRegistry
from agentic_rag.agent.session_log import SessionLog
from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.conversation import ConversationTurn, Source
from agentic_rag.oracle.base import ModelOracle
from agentic_rag.store.chunk_store import ChunkStore


class WorkflowState(TypedDict, total=False):
    """State object passed through the LangGraph workflow."""
    query: str  # the user's original query
    history: list[ConversationTurn]  # prior turns, without the in-flight user turn
    action: str | None  # RemedialAction value; None for a fresh pass
    feedback: str | None
    refined_query: str
    key_terms: list[str]
    retrieved_chunks: list[DocumentChunk]
    internal_context: str
    use_web_search: bool
    answer: str
    sources: list[Source]
    confidence: int
    justification: str
    outcome: str  # "completed" | "suspended"


@dataclass
class WorkflowContext:
    """Session collaborators the graph nodes read from and write to."""
    oracle: ModelOracle
    chunk_store: ChunkStore
    registry: AgentRegistry
    log: SessionLog
    ledger: ConversationLedger
    confidence_threshold: int = 75
    context_match_chars: int = 100
