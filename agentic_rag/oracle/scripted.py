"""Deterministic oracle for tests and offline runs.

Answers come from scripted values instead of a model, and every call is
recorded so tests can assert on exactly which operations ran.
"""

from collections.abc import Callable

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.generation import Evaluation, GenerationResult
from agentic_rag.oracle.base import ModelOracle, OracleError


class ScriptedOracle(ModelOracle):
    """Oracle driven by canned responses.

    Args:
        refined_query: Returned by refine_query. Defaults to echoing the query.
        feedback_refined_query: Returned by refine_query_with_feedback.
        relevant_ids: Chunk ids reported relevant, or a callable
            (query, chunks) -> ids. None means every chunk is relevant.
        answers: GenerationResults returned in order by generate_answer and
            enhance_with_web_search; the last one repeats.
        evaluations: Evaluations (or bare confidence scores) returned in order
            by evaluate_sufficiency; the last one repeats.
        fail_on: Operation names that raise OracleError.
    """

    def __init__(
        self,
        refined_query: str | None = None,
        feedback_refined_query: str = "refined with feedback",
        relevant_ids: list[str] | Callable[[str, list[DocumentChunk]], list[str]] | None = None,
        answers: list[GenerationResult] | None = None,
        evaluations: list[Evaluation | int] | None = None,
        fail_on: set[str] | None = None,
    ):
        self.refined_query = refined_query
        self.feedback_refined_query = feedback_refined_query
        self.relevant_ids = relevant_ids
        self.answers = list(answers or [GenerationResult(text="Scripted answer.")])
        self.evaluations = [
            e if isinstance(e, Evaluation) else Evaluation(e, f"Scripted score {e}.")
            for e in (evaluations or [90])
        ]
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple[str, dict]] = []

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def _record(self, operation: str, **kwargs) -> None:
        self.calls.append((operation, kwargs))
        if operation in self.fail_on:
            raise OracleError(f"Scripted failure in {operation}")

    @staticmethod
    def _next(items: list):
        return items.pop(0) if len(items) > 1 else items[0]

    async def refine_query(self, original_query, history):
        self._record("refine_query", original_query=original_query, history=list(history))
        return self.refined_query or original_query

    async def refine_query_with_feedback(self, original_query, history, feedback, justification):
        self._record(
            "refine_query_with_feedback",
            original_query=original_query,
            history=list(history),
            feedback=feedback,
            justification=justification,
        )
        return self.feedback_refined_query

    async def _rank_chunk_ids(self, query, chunks):
        self._record("rank_relevant_chunks", query=query, chunks=list(chunks))
        if self.relevant_ids is None:
            return [c.id for c in chunks]
        if callable(self.relevant_ids):
            return self.relevant_ids(query, chunks)
        return list(self.relevant_ids)

    async def generate_answer(self, query, history, internal_context, use_web_search):
        self._record(
            "generate_answer",
            query=query,
            history=list(history),
            internal_context=internal_context,
            use_web_search=use_web_search,
        )
        return self._next(self.answers)

    async def enhance_with_web_search(self, prior_text, query, history, internal_context):
        self._record(
            "enhance_with_web_search",
            prior_text=prior_text,
            query=query,
            history=list(history),
            internal_context=internal_context,
        )
        return self._next(self.answers)

    async def _evaluate(self, original_query, answer_text, history):
        self._record(
            "evaluate_sufficiency",
            original_query=original_query,
            answer_text=answer_text,
            history=list(history),
        )
        return self._next(self.evaluations)
