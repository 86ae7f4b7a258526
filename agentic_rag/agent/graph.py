"""LangGraph workflow definition for the agentic RAG pipeline.

One graph serves both a fresh pass and every remedial action. The entry
route picks the subgraph; evaluation routes to finalize or to a suspension
point that ends the run with a pending human decision.

    fresh:          refine_query → pre_analysis → retrieve → generate → evaluate
    refine_query:   refine_with_feedback → retrieve → generate → evaluate
    search_web:     enhance_with_web_search → evaluate
    add_context,
    manual_improvement: carry_over → evaluate
    accept_response:    accept_response → finalize
    evaluate → finalize | await_human
"""

from functools import partial

from langgraph.graph import END, START, StateGraph

from agentic_rag.agent.nodes import (
    accept_response,
    await_human,
    carry_over,
    enhance_with_web_search,
    evaluate,
    finalize,
    generate,
    pre_analysis,
    refine_query,
    refine_with_feedback,
    retrieve,
)
from agentic_rag.agent.state import WorkflowContext, WorkflowState
from agentic_rag.models.enums import RemedialAction

ACTION_ENTRY_NODES = {
    RemedialAction.REFINE_QUERY: "refine_with_feedback",
    RemedialAction.SEARCH_WEB: "enhance_with_web_search",
    RemedialAction.ADD_CONTEXT: "carry_over",
    RemedialAction.MANUAL_IMPROVEMENT: "carry_over",
    RemedialAction.ACCEPT_RESPONSE: "accept_response",
}


def _route_entry(state: WorkflowState) -> str:
    """Fresh passes start at refinement; resumed runs start at their action's node."""
    action = state.get("action")
    if action is None:
        return "refine_query"
    return ACTION_ENTRY_NODES[RemedialAction(action)]


def _route_after_evaluation(state: WorkflowState, threshold: int) -> str:
    """Finalize when confidence clears the threshold, otherwise suspend."""
    if state["confidence"] >= threshold:
        return "finalize"
    return "await_human"


def build_graph(ctx: WorkflowContext):
    """Build the workflow graph bound to one session's collaborators.

    Args:
        ctx: The session's oracle, chunk store, registry, log and ledger.

    Returns:
        A compiled LangGraph StateGraph.
    """
    graph = StateGraph(WorkflowState)

    # Add nodes
    graph.add_node("refine_query", partial(refine_query, ctx=ctx))
    graph.add_node("refine_with_feedback", partial(refine_with_feedback, ctx=ctx))
    graph.add_node("pre_analysis", partial(pre_analysis, ctx=ctx))
    graph.add_node("retrieve", partial(retrieve, ctx=ctx))
    graph.add_node("generate", partial(generate, ctx=ctx))
    graph.add_node("enhance_with_web_search", partial(enhance_with_web_search, ctx=ctx))
    graph.add_node("carry_over", partial(carry_over, ctx=ctx))
    graph.add_node("accept_response", partial(accept_response, ctx=ctx))
    graph.add_node("evaluate", partial(evaluate, ctx=ctx))
    graph.add_node("await_human", partial(await_human, ctx=ctx))
    graph.add_node("finalize", partial(finalize, ctx=ctx))

    # Entry: fresh pass or remedial action
    graph.add_conditional_edges(
        START,
        _route_entry,
        ["refine_query", "refine_with_feedback", "enhance_with_web_search",
         "carry_over", "accept_response"],
    )

    # Add edges
    graph.add_edge("refine_query", "pre_analysis")
    graph.add_edge("pre_analysis", "retrieve")
    graph.add_edge("refine_with_feedback", "retrieve")
    graph.add_edge("retrieve", "generate")
    graph.add_edge("generate", "evaluate")
    graph.add_edge("enhance_with_web_search", "evaluate")
    graph.add_edge("carry_over", "evaluate")
    graph.add_edge("accept_response", "finalize")
    graph.add_conditional_edges(
        "evaluate",
        partial(_route_after_evaluation, threshold=ctx.confidence_threshold),
        ["finalize", "await_human"],
    )
    graph.add_edge("await_human", END)
    graph.add_edge("finalize", END)

    return graph.compile()
