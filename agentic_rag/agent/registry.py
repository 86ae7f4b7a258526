"""Per-stage status tracking for the workflow."""

import dataclasses
import logging

from agentic_rag.models.agent import AgentStepRecord
from agentic_rag.models.enums import AgentStatus, StageId

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Fixed, ordered set of stage records keyed by StageId.

    Records are immutable; every update swaps in a new record.
    """

    def __init__(self, records: list[AgentStepRecord] | None = None):
        self._records = {stage: AgentStepRecord.initial(stage) for stage in StageId}
        for record in records or []:
            self._records[record.id] = record

    def get(self, stage: StageId) -> AgentStepRecord:
        return self._records[stage]

    def status(self, stage: StageId) -> AgentStatus:
        return self._records[stage].status

    def records(self) -> list[AgentStepRecord]:
        """All records in stage order (0..6)."""
        return [self._records[stage] for stage in StageId]

    def set_status(
        self, stage: StageId, status: AgentStatus, output: str | None = None
    ) -> AgentStepRecord:
        """Update a stage's status, keeping its previous output when none is given."""
        current = self._records[stage]
        updated = dataclasses.replace(
            current,
            status=status,
            last_output=output if output is not None else current.last_output,
        )
        self._records[stage] = updated
        logger.debug("Stage %s -> %s", stage.value, status.value)
        return updated

    def running_stages(self) -> list[StageId]:
        return [r.id for r in self.records() if r.status == AgentStatus.RUNNING]

    def mark_running_failed(self, error: str) -> list[StageId]:
        """Fail every stage that is currently running. Returns the failed stages."""
        failed = self.running_stages()
        for stage in failed:
            self.set_status(stage, AgentStatus.FAILED, error)
        return failed

    def reset_for_new_query(self) -> None:
        """Restore every stage except document processing to its initial record.

        Document processing reflects the standing knowledge base, not the
        per-query pipeline, so it keeps its last status.
        """
        for stage in StageId:
            if stage != StageId.DOCUMENT_PROCESSING:
                self._records[stage] = AgentStepRecord.initial(stage)

    def reset_all(self) -> None:
        for stage in StageId:
            self._records[stage] = AgentStepRecord.initial(stage)
