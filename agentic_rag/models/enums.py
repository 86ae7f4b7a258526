"""Enumeration types for the agentic RAG workflow."""

from enum import Enum


class AgentStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageId(str, Enum):
    """Fixed pipeline stages, declared in execution order (0..6)."""

    DOCUMENT_PROCESSING = "document_processing"
    QUERY_REFINEMENT = "query_refinement"
    CONTEXTUAL_PRE_ANALYSIS = "contextual_pre_analysis"
    DYNAMIC_RETRIEVAL = "dynamic_retrieval"
    RESPONSE_GENERATION = "response_generation"
    SUFFICIENCY_EVALUATION = "sufficiency_evaluation"
    FINAL_OUTPUT = "final_output"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class WorkflowPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    AWAITING_HUMAN_INPUT = "awaiting_human_input"
    COMPLETED = "completed"
    FAILED = "failed"


class RemedialAction(str, Enum):
    REFINE_QUERY = "refine_query"
    SEARCH_WEB = "search_web"
    ADD_CONTEXT = "add_context"
    ACCEPT_RESPONSE = "accept_response"
    MANUAL_IMPROVEMENT = "manual_improvement"
