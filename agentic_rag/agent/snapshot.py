"""Session snapshots: the full observable state of one orchestrator.

Snapshots serialize to JSON through a pydantic TypeAdapter over the frozen
domain dataclasses, so restore goes through the same validation as live code.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter

from agentic_rag.agent.session_log import LogEntry
from agentic_rag.models.agent import AgentStepRecord
from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.conversation import ConversationTurn
from agentic_rag.models.decision import PendingHumanDecision
from agentic_rag.models.enums import WorkflowPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    stages: tuple[AgentStepRecord, ...]
    log: tuple[LogEntry, ...]
    turns: tuple[ConversationTurn, ...]
    chunks: tuple[DocumentChunk, ...]
    phase: WorkflowPhase
    pending_decision: PendingHumanDecision | None = None

    def __post_init__(self):
        awaiting = self.phase == WorkflowPhase.AWAITING_HUMAN_INPUT
        if awaiting != (self.pending_decision is not None):
            raise ValueError(
                "A pending decision must exist exactly when the phase is awaiting_human_input"
            )
        if self.phase == WorkflowPhase.RUNNING:
            raise ValueError("Cannot snapshot a session with a pass in flight")


_adapter = TypeAdapter(SessionSnapshot)


def dump_session(snapshot: SessionSnapshot) -> str:
    return _adapter.dump_json(snapshot, indent=2).decode("utf-8")


def load_session(data: str | bytes) -> SessionSnapshot:
    """Parse a snapshot produced by dump_session.

    Raises:
        pydantic.ValidationError: If the payload is malformed or inconsistent.
    """
    return _adapter.validate_json(data)


def save_session(snapshot: SessionSnapshot, path: Path | str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_session(snapshot), encoding="utf-8")
    logger.info("Saved session to %s", path)
    return path


def read_session(path: Path | str) -> SessionSnapshot | None:
    """Load a saved session, or None if the file does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    logger.info("Loading session from %s", path)
    return load_session(path.read_text(encoding="utf-8"))
