"""Agent graph nodes for the agentic RAG workflow.

Each node marks its stage Running before doing any work and Completed once
its result is available, so a failure leaves exactly the in-flight stages
Running for the orchestrator to fail.
"""

import logging

from agentic_rag.agent.state import WorkflowContext, WorkflowState
from agentic_rag.models.conversation import model_turn
from agentic_rag.models.enums import AgentStatus, RemedialAction, StageId
from agentic_rag.retrieval.keyword import (
    build_internal_context,
    extract_key_terms,
    match_context_chunks,
)

logger = logging.getLogger(__name__)

REEVALUATION_SUBJECTS = {
    RemedialAction.REFINE_QUERY.value: "regenerated",
    RemedialAction.SEARCH_WEB.value: "enhanced",
}


async def refine_query(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Rewrite the raw query into a standalone query using prior turns."""
    ctx.log.append("Agent 1 [Query Refinement] starting...")
    ctx.registry.set_status(StageId.QUERY_REFINEMENT, AgentStatus.RUNNING)

    refined = await ctx.oracle.refine_query(state["query"], state["history"])

    ctx.registry.set_status(
        StageId.QUERY_REFINEMENT, AgentStatus.COMPLETED, f"Refined Query: {refined}"
    )
    ctx.log.append(f'Agent 1 [Query Refinement] completed. New query: "{refined}"')
    return {"refined_query": refined}


async def refine_with_feedback(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Rewrite the original query using human feedback and the low-score justification."""
    ctx.log.append("Refining query based on human feedback...")
    ctx.registry.set_status(StageId.QUERY_REFINEMENT, AgentStatus.RUNNING)

    refined = await ctx.oracle.refine_query_with_feedback(
        state["query"],
        state["history"],
        state.get("feedback") or "",
        state.get("justification", ""),
    )

    ctx.registry.set_status(
        StageId.QUERY_REFINEMENT, AgentStatus.COMPLETED, f"Refined Query: {refined}"
    )
    ctx.log.append(f'Query refined to: "{refined}"')
    ctx.log.append("Re-running retrieval with refined query...")
    return {"refined_query": refined}


async def pre_analysis(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Identify the key terms of the refined query. Local, never calls the oracle."""
    ctx.log.append("Agent 2 [Contextual Pre-Analysis] starting...")
    ctx.registry.set_status(StageId.CONTEXTUAL_PRE_ANALYSIS, AgentStatus.RUNNING)

    terms = extract_key_terms(state["refined_query"])
    if terms:
        output = f"Identified key terms: {', '.join(terms)}"
    else:
        output = "No distinctive key terms identified."

    ctx.registry.set_status(StageId.CONTEXTUAL_PRE_ANALYSIS, AgentStatus.COMPLETED, output)
    ctx.log.append("Agent 2 [Contextual Pre-Analysis] completed.")
    return {"key_terms": terms}


async def retrieve(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Rank knowledge-base chunks and decide whether to fall back to web search.

    Web search is used exactly when no internal chunk is relevant; internal
    and web evidence are never blended here.
    """
    ctx.log.append("Agent 3 [Dynamic Retrieval] starting...")
    ctx.registry.set_status(StageId.DYNAMIC_RETRIEVAL, AgentStatus.RUNNING)

    chunks = []
    if ctx.chunk_store:
        ctx.log.append("Searching local knowledge base...")
        logger.debug("Ranking %d chunks for %r", len(ctx.chunk_store), state["refined_query"])
        chunks = await ctx.oracle.rank_relevant_chunks(state["refined_query"], ctx.chunk_store.all())
        if chunks:
            ctx.log.append(f"Found {len(chunks)} relevant chunk(s) in your documents.")
        else:
            ctx.log.append("No relevant information found in your documents for this query.")

    use_web_search = not chunks
    summary = ""
    if chunks:
        summary += f"Retrieved {len(chunks)} internal chunk(s). "
    if use_web_search:
        summary += "External web search initiated."
        ctx.log.append("Internal context insufficient, proceeding with web search.")
    else:
        summary += "Skipping external web search."

    ctx.registry.set_status(StageId.DYNAMIC_RETRIEVAL, AgentStatus.COMPLETED, summary)
    ctx.log.append("Agent 3 [Dynamic Retrieval] completed.")
    return {
        "retrieved_chunks": chunks,
        "internal_context": build_internal_context(chunks),
        "use_web_search": use_web_search,
    }


async def generate(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Draft an answer from history, internal context and optional web search."""
    ctx.log.append("Agent 4 [Response Generation] starting...")
    ctx.registry.set_status(StageId.RESPONSE_GENERATION, AgentStatus.RUNNING)

    result = await ctx.oracle.generate_answer(
        state["refined_query"],
        state["history"],
        state.get("internal_context", ""),
        state.get("use_web_search", True),
    )

    output = "Initial response draft generated."
    if state.get("use_web_search"):
        output += f" Found {len(result.sources)} web source(s)."
    ctx.registry.set_status(StageId.RESPONSE_GENERATION, AgentStatus.COMPLETED, output)
    ctx.log.append("Agent 4 [Response Generation] completed.")
    return {"answer": result.text, "sources": list(result.sources)}


async def enhance_with_web_search(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Force a web search and fold its findings into the existing answer."""
    ctx.log.append("Enhancing response with web search...")
    ctx.registry.set_status(StageId.DYNAMIC_RETRIEVAL, AgentStatus.RUNNING)
    ctx.registry.set_status(StageId.RESPONSE_GENERATION, AgentStatus.RUNNING)

    internal_context = state.get("internal_context", "")
    result = await ctx.oracle.enhance_with_web_search(
        state["answer"],
        state["refined_query"],
        state["history"],
        internal_context,
    )
    # the store may have been replaced since the context was built
    chunks = match_context_chunks(
        internal_context, state.get("retrieved_chunks", []), ctx.context_match_chars
    )

    ctx.registry.set_status(
        StageId.DYNAMIC_RETRIEVAL,
        AgentStatus.COMPLETED,
        f"Web search completed, found {len(result.sources)} sources.",
    )
    ctx.registry.set_status(
        StageId.RESPONSE_GENERATION, AgentStatus.COMPLETED, "Response enhanced with web search."
    )
    return {"answer": result.text, "sources": list(result.sources), "retrieved_chunks": chunks}


async def carry_over(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Placeholder actions: keep the current response and re-evaluate it."""
    if state.get("action") == RemedialAction.ADD_CONTEXT.value:
        ctx.log.append("Adding context is not available yet; keeping the current response.")
    else:
        ctx.log.append("Manual improvement is not available yet; keeping the current response.")
    return {"answer": state["answer"]}


async def accept_response(state: WorkflowState, ctx: WorkflowContext) -> dict:
    ctx.log.append("Accepting current response as requested by user.")
    ctx.log.append("Skipping re-evaluation as user accepted the current response.")
    return {"answer": state["answer"]}


async def evaluate(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Score the draft against the original query."""
    action = state.get("action")
    resumed = bool(action)
    if resumed:
        subject = REEVALUATION_SUBJECTS.get(action, "current")
        ctx.log.append(f"Agent 5 [Sufficiency Evaluation] re-evaluating {subject} response...")
    else:
        ctx.log.append("Agent 5 [Sufficiency Evaluation] starting...")
    ctx.registry.set_status(StageId.SUFFICIENCY_EVALUATION, AgentStatus.RUNNING)

    evaluation = await ctx.oracle.evaluate_sufficiency(
        state["query"], state["answer"], state["history"]
    )
    score = evaluation.confidence_score

    ctx.registry.set_status(
        StageId.SUFFICIENCY_EVALUATION,
        AgentStatus.COMPLETED,
        f"{'Re-evaluation ' if resumed else ''}Confidence: {score}%. "
        f"Justification: {evaluation.justification}",
    )
    ctx.log.append(f"Agent 5 [Sufficiency Evaluation] completed. Confidence: {score}%.")
    if score >= ctx.confidence_threshold:
        ctx.log.append(
            f"Confidence is acceptable ({score}% >= {ctx.confidence_threshold}%). "
            "Proceeding to final output."
        )
    return {
        "confidence": evaluation.confidence_score,
        "justification": evaluation.justification,
    }


async def await_human(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Stop the pass; the orchestrator turns the state into a pending decision."""
    ctx.log.append(
        f"Confidence below {ctx.confidence_threshold}%. Initiating human-in-the-loop process..."
    )
    return {"outcome": "suspended"}


async def finalize(state: WorkflowState, ctx: WorkflowContext) -> dict:
    """Package the answer into a model turn and append it to the ledger."""
    ctx.log.append("Agent 6 [Final Output] preparing response...")
    ctx.registry.set_status(StageId.FINAL_OUTPUT, AgentStatus.RUNNING)

    ctx.ledger.append(model_turn(
        state["answer"],
        sources=state.get("sources", []),
        retrieved_chunks=state.get("retrieved_chunks", []),
    ))

    output = "Enhanced response delivered." if state.get("action") else "Response formatted and delivered."
    ctx.registry.set_status(StageId.FINAL_OUTPUT, AgentStatus.COMPLETED, output)
    return {"outcome": "completed"}
