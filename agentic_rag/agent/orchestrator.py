"""Workflow orchestrator: one instance per user session.

Owns the session's agent registry, session log, conversation ledger and
chunk store, runs the workflow graph over them, and exposes the
pause/resume contract for human intervention:

- submit_query runs a fresh pass; it ends Completed, Failed, or
  AwaitingHumanInput with a PendingHumanDecision
- resolve_decision applies a remedial action to the pending decision
- dismiss_decision abandons it

Suspension is explicit state (phase + pending decision), never a parked
coroutine, so a session can be snapshotted and restored while suspended.

Re-evaluation has no round limit: a response that keeps scoring below the
threshold re-suspends until the user accepts it or dismisses the decision.
"""

import logging
from pathlib import Path

from agentic_rag.agent.graph import build_graph
from agentic_rag.agent.ledger import ConversationLedger
from agentic_rag.agent.registry import AgentRegistry
from agentic_rag.agent.session_log import SessionLog
from agentic_rag.agent.snapshot import SessionSnapshot
from agentic_rag.agent.state import WorkflowContext, WorkflowState
from agentic_rag.ingestion.pipeline import run_ingestion_pipeline
from agentic_rag.models.conversation import ConversationTurn, error_turn, user_turn
from agentic_rag.models.decision import ALL_ACTIONS, PendingHumanDecision
from agentic_rag.models.enums import AgentStatus, RemedialAction, Role, StageId, WorkflowPhase
from agentic_rag.oracle.base import ModelOracle
from agentic_rag.store.chunk_store import ChunkStore
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class WorkflowValidationError(ValueError):
    """Raised for requests that are invalid in the current state. No state is changed."""


class WorkflowBusyError(RuntimeError):
    """Raised when a query pass or ingestion batch is already in flight."""


def prior_turns(chat_history: tuple[ConversationTurn, ...]) -> list[ConversationTurn]:
    """History without the trailing in-flight user turn."""
    if chat_history and chat_history[-1].role == Role.USER:
        return list(chat_history[:-1])
    return list(chat_history)


class WorkflowOrchestrator:
    """Drives the agent stages for one session."""

    def __init__(
        self,
        oracle: ModelOracle,
        settings: Settings | None = None,
        *,
        confidence_threshold: int | None = None,
        chunk_store: ChunkStore | None = None,
        registry: AgentRegistry | None = None,
        log: SessionLog | None = None,
        ledger: ConversationLedger | None = None,
        phase: WorkflowPhase = WorkflowPhase.IDLE,
        pending_decision: PendingHumanDecision | None = None,
    ):
        settings = settings or get_settings()
        threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else settings.agentic_rag_confidence_threshold
        )
        if not 0 <= threshold <= 100:
            raise ValueError(f"confidence_threshold must be between 0 and 100, got {threshold}")

        self._oracle = oracle
        self._max_chunk_chars = settings.agentic_rag_max_chunk_chars
        self._chunk_store = chunk_store if chunk_store is not None else ChunkStore()
        self._registry = registry if registry is not None else AgentRegistry()
        self._log = log if log is not None else SessionLog()
        self._ledger = ledger if ledger is not None else ConversationLedger()
        self._phase = phase
        self._pending = pending_decision
        self._running = False
        self._indexing = False

        self._context = WorkflowContext(
            oracle=oracle,
            chunk_store=self._chunk_store,
            registry=self._registry,
            log=self._log,
            ledger=self._ledger,
            confidence_threshold=threshold,
            context_match_chars=settings.agentic_rag_context_match_chars,
        )
        self._graph = build_graph(self._context)

    # --- Read-only views ---

    @property
    def phase(self) -> WorkflowPhase:
        return self._phase

    @property
    def pending_decision(self) -> PendingHumanDecision | None:
        return self._pending

    @property
    def confidence_threshold(self) -> int:
        return self._context.confidence_threshold

    @property
    def registry(self) -> AgentRegistry:
        return self._registry

    @property
    def log(self) -> SessionLog:
        return self._log

    @property
    def ledger(self) -> ConversationLedger:
        return self._ledger

    @property
    def chunk_store(self) -> ChunkStore:
        return self._chunk_store

    @property
    def is_busy(self) -> bool:
        return self._running or self._indexing

    # --- Query pipeline ---

    async def submit_query(self, query: str) -> WorkflowPhase:
        """Run a fresh pass for ``query`` and return the resulting phase.

        Raises:
            WorkflowValidationError: If the query is empty.
            WorkflowBusyError: If a pass or ingestion is in flight, or a human
                decision is pending.
        """
        if not query or not query.strip():
            raise WorkflowValidationError("Query must not be empty")
        self._ensure_idle()
        if self._phase == WorkflowPhase.AWAITING_HUMAN_INPUT:
            raise WorkflowBusyError("A human decision is pending; resolve or dismiss it first")

        self._running = True
        try:
            self._registry.reset_for_new_query()
            history = list(self._ledger.snapshot())
            self._ledger.append(user_turn(query))
            self._phase = WorkflowPhase.RUNNING
            self._log.append(f'Workflow started for query: "{query}"')

            state: WorkflowState = {
                "query": query,
                "history": history,
                "action": None,
                "feedback": None,
            }
            await self._run(state, chat_history=None)
        finally:
            self._running = False
        return self._phase

    async def resolve_decision(
        self, action: RemedialAction | str, feedback: str | None = None
    ) -> WorkflowPhase:
        """Apply a remedial action to the pending decision and return the resulting phase.

        Raises:
            WorkflowValidationError: If nothing is pending, the action is unknown
                or unavailable, or refine_query is missing its feedback.
            WorkflowBusyError: If a pass or ingestion is in flight.
        """
        try:
            action = RemedialAction(action)
        except ValueError as e:
            raise WorkflowValidationError(f"Unknown action: {action}") from e
        self._ensure_idle()

        decision = self._pending
        if self._phase != WorkflowPhase.AWAITING_HUMAN_INPUT or decision is None:
            raise WorkflowValidationError("No pending human decision to resolve")
        if action not in decision.available_actions:
            raise WorkflowValidationError(f"Action not available: {action.value}")
        if action == RemedialAction.REFINE_QUERY and not (feedback and feedback.strip()):
            raise WorkflowValidationError("refine_query requires feedback")

        self._running = True
        try:
            self._log.append(f"Human action: {action.value}")
            self._phase = WorkflowPhase.RUNNING

            state: WorkflowState = {
                "query": decision.original_query,
                "history": prior_turns(decision.chat_history),
                "action": action.value,
                "feedback": feedback,
                "refined_query": decision.refined_query,
                "internal_context": decision.internal_context,
                "retrieved_chunks": list(decision.retrieved_chunks),
                "answer": decision.current_response,
                "sources": list(decision.sources),
                "confidence": decision.confidence,
                "justification": decision.justification,
            }
            await self._run(state, chat_history=decision.chat_history)
        finally:
            self._running = False
        return self._phase

    def dismiss_decision(self) -> None:
        """Abandon the pending decision without delivering a response."""
        if self._phase != WorkflowPhase.AWAITING_HUMAN_INPUT:
            raise WorkflowValidationError("No pending human decision to dismiss")
        self._pending = None
        self._phase = WorkflowPhase.IDLE
        self._log.append("Human-in-the-loop decision dismissed; response discarded.")

    async def _run(
        self,
        state: WorkflowState,
        chat_history: tuple[ConversationTurn, ...] | None,
    ) -> None:
        resumed = chat_history is not None
        try:
            result = await self._graph.ainvoke(state)
        except Exception as e:
            self._fail(e, resumed)
            return

        if result.get("outcome") == "suspended":
            self._suspend(result, chat_history if resumed else self._ledger.snapshot())
            return

        self._pending = None
        self._phase = WorkflowPhase.COMPLETED
        if resumed:
            self._log.append("Human-in-the-loop workflow completed successfully.")
        else:
            self._log.append("Workflow finished successfully.")

    def _suspend(self, result: dict, chat_history: tuple[ConversationTurn, ...]) -> None:
        if self._pending is not None:
            self._log.append(
                f"Re-evaluation confidence still below {self.confidence_threshold}%. "
                "Offering another round of human intervention..."
            )
        self._pending = PendingHumanDecision(
            current_response=result["answer"],
            confidence=result["confidence"],
            justification=result["justification"],
            original_query=result["query"],
            refined_query=result["refined_query"],
            internal_context=result.get("internal_context", ""),
            chat_history=chat_history,
            available_actions=ALL_ACTIONS,
            sources=tuple(result.get("sources", [])),
            retrieved_chunks=tuple(result.get("retrieved_chunks", [])),
        )
        self._phase = WorkflowPhase.AWAITING_HUMAN_INPUT

    def _fail(self, error: Exception, resumed: bool) -> None:
        message = str(error) or error.__class__.__name__
        logger.exception("Workflow step failed")
        failed = self._registry.mark_running_failed(message)
        if resumed:
            self._log.append(f"Human-in-the-loop action failed: {message}")
        else:
            self._log.append(f"Workflow failed: {message}")
        if failed:
            logger.info("Failed stages: %s", ", ".join(s.value for s in failed))
        self._ledger.append(error_turn(message))
        self._pending = None
        self._phase = WorkflowPhase.FAILED

    # --- Knowledge base ---

    async def ingest_files(self, paths: list[Path | str]) -> dict:
        """Replace the knowledge base with the chunks of ``paths``.

        All-or-nothing: if any file fails, the chunk store is left empty and
        document processing is marked Failed.

        Returns a summary dict with file and chunk counts and the error, if any.
        """
        if not paths:
            raise WorkflowValidationError("No files to ingest")
        self._ensure_idle()

        self._indexing = True
        stage = StageId.DOCUMENT_PROCESSING
        self._registry.set_status(stage, AgentStatus.RUNNING, f"Processing {len(paths)} file(s)...")
        self._log.append(f"Agent 0 [Document Processing] starting for {len(paths)} file(s)...")
        try:
            batch = await run_ingestion_pipeline(paths, self._max_chunk_chars, log=self._log.append)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            self._chunk_store.clear()
            self._registry.set_status(stage, AgentStatus.FAILED, message)
            self._log.append(f"Agent 0 [Document Processing] failed: {message}")
            return {
                "files_processed": 0,
                "files_skipped": 0,
                "chunks_stored": 0,
                "error": message,
            }
        finally:
            self._indexing = False

        stored = self._chunk_store.replace(batch["chunks"])
        self._registry.set_status(
            stage,
            AgentStatus.COMPLETED,
            f"Successfully processed {len(paths)} file(s) into {stored} chunks.",
        )
        self._log.append("Agent 0 [Document Processing] completed.")
        return {
            "files_processed": batch["files_processed"],
            "files_skipped": batch["files_skipped"],
            "chunks_stored": stored,
            "error": None,
        }

    # --- Session lifecycle ---

    def new_session(self) -> None:
        """Forget everything: stages, log, conversation, knowledge base, pending decision."""
        self._ensure_idle()
        self._registry.reset_all()
        self._log.clear()
        self._ledger.clear()
        self._chunk_store.clear()
        self._pending = None
        self._phase = WorkflowPhase.IDLE

    def snapshot(self) -> SessionSnapshot:
        self._ensure_idle()
        return SessionSnapshot(
            stages=tuple(self._registry.records()),
            log=self._log.entries(),
            turns=self._ledger.snapshot(),
            chunks=tuple(self._chunk_store),
            phase=self._phase,
            pending_decision=self._pending,
        )

    @classmethod
    def restore(
        cls,
        snapshot: SessionSnapshot,
        oracle: ModelOracle,
        settings: Settings | None = None,
        *,
        confidence_threshold: int | None = None,
    ) -> "WorkflowOrchestrator":
        """Rebuild an orchestrator in the exact state captured by ``snapshot``."""
        return cls(
            oracle,
            settings,
            confidence_threshold=confidence_threshold,
            chunk_store=ChunkStore(snapshot.chunks),
            registry=AgentRegistry(list(snapshot.stages)),
            log=SessionLog(list(snapshot.log)),
            ledger=ConversationLedger(list(snapshot.turns)),
            phase=snapshot.phase,
            pending_decision=snapshot.pending_decision,
        )

    def _ensure_idle(self) -> None:
        if self._running:
            raise WorkflowBusyError("A workflow pass is already in flight")
        if self._indexing:
            raise WorkflowBusyError("Documents are being ingested")
