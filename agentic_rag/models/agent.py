"""Agent stage status record."""

from dataclasses import dataclass

from agentic_rag.models.enums import AgentStatus, StageId

STAGE_NAMES = {
    StageId.DOCUMENT_PROCESSING: "0. Document Processing",
    StageId.QUERY_REFINEMENT: "1. Query Refinement",
    StageId.CONTEXTUAL_PRE_ANALYSIS: "2. Contextual Pre-Analysis",
    StageId.DYNAMIC_RETRIEVAL: "3. Dynamic Retrieval",
    StageId.RESPONSE_GENERATION: "4. Response Generation",
    StageId.SUFFICIENCY_EVALUATION: "5. Sufficiency Evaluation",
    StageId.FINAL_OUTPUT: "6. Final Output",
}

STAGE_DESCRIPTIONS = {
    StageId.DOCUMENT_PROCESSING: (
        "Processes uploaded files (.txt, .pdf), splitting them into manageable "
        "chunks to create a local knowledge base."
    ),
    StageId.QUERY_REFINEMENT: (
        "Analyzes the initial query for ambiguity and refines it for better search precision."
    ),
    StageId.CONTEXTUAL_PRE_ANALYSIS: (
        "Identifies key entities and concepts in the refined query to inform the retrieval strategy."
    ),
    StageId.DYNAMIC_RETRIEVAL: (
        "Searches the local knowledge base and/or the web to find the most relevant "
        "information to answer the query."
    ),
    StageId.RESPONSE_GENERATION: (
        "Synthesizes information from all retrieved sources to formulate an initial draft response."
    ),
    StageId.SUFFICIENCY_EVALUATION: (
        "Evaluates the draft response for completeness, accuracy, and confidence."
    ),
    StageId.FINAL_OUTPUT: (
        "Formats and presents the final, validated response to the user, including sources."
    ),
}


@dataclass(frozen=True)
class AgentStepRecord:
    """Status of one pipeline stage, replaced wholesale on every update."""

    id: StageId
    name: str
    status: AgentStatus
    description: str
    last_output: str | None = None

    def __post_init__(self):
        if not isinstance(self.id, StageId):
            object.__setattr__(self, "id", StageId(self.id))
        if not isinstance(self.status, AgentStatus):
            object.__setattr__(self, "status", AgentStatus(self.status))

    @classmethod
    def initial(cls, stage: StageId) -> "AgentStepRecord":
        return cls(
            id=stage,
            name=STAGE_NAMES[stage],
            status=AgentStatus.IDLE,
            description=STAGE_DESCRIPTIONS[stage],
        )
