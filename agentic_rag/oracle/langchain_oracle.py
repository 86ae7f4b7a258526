"""LangChain-backed model oracle.

Every provider exception and every malformed payload is wrapped in
OracleError so the orchestrator sees a single failure type.
"""

import json
import logging
import re

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from agentic_rag.llm.config import get_llm, get_search_llm
from agentic_rag.models.conversation import ConversationTurn, Source
from agentic_rag.models.enums import Role
from agentic_rag.models.generation import Evaluation, GenerationResult
from agentic_rag.oracle.base import ModelOracle, OracleError, dedupe_sources
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

REFINE_INSTRUCTION = (
    "You are a Query Understanding & Expansion Agent. Given a conversation history "
    "and the user's latest query, your goal is to rephrase the latest query into a "
    "standalone, precise, and comprehensive query for an advanced search system. "
    "The refined query should incorporate context from the history. "
    "Return ONLY the rephrased query, without any preamble or explanation."
)

REFINE_WITH_FEEDBACK_INSTRUCTION = (
    "You are a Query Understanding & Expansion Agent with human feedback integration. "
    "Given a conversation history, the user's original query, human feedback about a "
    "low-confidence response, and the identified issue, create an improved, more "
    "specific query that addresses the concerns raised.\n\n"
    "Original issue with the response: {justification}\n"
    "Human feedback: {feedback}\n\n"
    "Your goal is to refine the query to be more targeted and likely to produce a "
    "higher-confidence response. Return ONLY the refined query, without any preamble "
    "or explanation."
)

RANK_INSTRUCTION = (
    "You are a semantic search engine. Your task is to find the most relevant document "
    "chunks to answer the user's query. The user will provide a query and a list of "
    "document chunks in JSON format.\n\n"
    "Respond with ONLY a JSON object (no markdown, no explanation):\n"
    '{"relevantChunkIds": ["<chunk id>", ...]}\n\n'
    "If no chunks are relevant, return an empty array."
)

GENERATE_INSTRUCTION = (
    "You are a helpful and conversational Response Generation Agent. You synthesize "
    "information from the conversation history and various sources to formulate a "
    "comprehensive, well-structured, and accurate answer. Answer the user's latest "
    "query based on the full conversation context. Use markdown for formatting."
)

ENHANCE_INSTRUCTION = (
    "You are a Response Enhancement Agent. You have an existing response that had low "
    "confidence. Your task is to enhance it by incorporating additional web search "
    "results while maintaining coherence with the original response and conversation "
    "context.\n\n"
    "Original Response (to be enhanced):\n{prior_text}\n\n"
    "Instructions:\n"
    "- Use web search to find additional relevant information\n"
    "- Integrate new findings with the existing response\n"
    "- Maintain conversation context and flow\n"
    "- Provide a comprehensive, well-structured answer\n"
    "- Use markdown for formatting"
)

EVALUATE_INSTRUCTION = (
    "You are a Sufficiency & Confidence Evaluation Agent. Your task is to critically "
    "evaluate a generated response based on the user's original query and the "
    "conversation history. Assess for completeness (Does it answer the latest query "
    "in context?), accuracy, and coherence.\n\n"
    "Respond with ONLY a JSON object (no markdown, no explanation):\n"
    '{"confidenceScore": <integer 0-100>, "justification": "<one sentence>"}'
)


def _strip_code_fences(text: str) -> str:
    # LLMs often wrap JSON in ```json ... ```
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


def _parse_json_object(text: str) -> dict:
    try:
        parsed = json.loads(_strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise OracleError(f"Model returned malformed JSON: {text[:200]!r}") from e
    if not isinstance(parsed, dict):
        raise OracleError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def message_text(message: BaseMessage) -> str:
    """Plain text of a chat message whose content may be a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_web_sources(message: BaseMessage) -> list[Source]:
    """Collect web sources from provider grounding data.

    Reads Google Search grounding chunks from the response metadata and
    Anthropic web search results / citations from content blocks. Entries
    without both a uri and a title are dropped; repeated uris are collapsed.
    """
    candidates: list[tuple[str | None, str | None]] = []

    grounding = (message.response_metadata or {}).get("grounding_metadata") or {}
    for chunk in grounding.get("grounding_chunks") or []:
        web = chunk.get("web") or {}
        candidates.append((web.get("uri"), web.get("title")))

    if isinstance(message.content, list):
        for block in message.content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "web_search_tool_result" and isinstance(block.get("content"), list):
                for result in block["content"]:
                    if isinstance(result, dict):
                        candidates.append((result.get("url"), result.get("title")))
            for citation in block.get("citations") or []:
                if isinstance(citation, dict):
                    candidates.append((citation.get("url"), citation.get("title")))

    return dedupe_sources([
        Source(uri=uri, title=title) for uri, title in candidates if uri and title
    ])


def _history_lines(history: list[ConversationTurn]) -> str:
    return "\n".join(f"{turn.role.value}: {turn.text}" for turn in history)


def _history_messages(history: list[ConversationTurn]) -> list[BaseMessage]:
    return [
        HumanMessage(content=turn.text) if turn.role == Role.USER else AIMessage(content=turn.text)
        for turn in history
    ]


class LangChainOracle(ModelOracle):
    """Model oracle talking to the configured chat model provider."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    def _refine_llm(self):
        return get_llm(temperature=self._settings.agentic_rag_refine_temperature)

    async def _invoke(self, llm_factory, messages: list[BaseMessage], operation: str) -> BaseMessage:
        try:
            llm = llm_factory()
            return await llm.ainvoke(messages)
        except Exception as e:
            logger.error("Error in %s: %s", operation, e)
            raise OracleError(f"Failed to {operation}.") from e

    async def refine_query(self, original_query, history):
        messages = [
            SystemMessage(content=REFINE_INSTRUCTION),
            HumanMessage(content=(
                f"Conversation History:\n{_history_lines(history)}\n\n"
                f'Latest User Query: "{original_query}"'
            )),
        ]
        response = await self._invoke(self._refine_llm, messages, "refine query")
        refined = message_text(response).strip()
        if not refined:
            raise OracleError("Failed to refine query: empty response.")
        return refined

    async def refine_query_with_feedback(self, original_query, history, feedback, justification):
        messages = [
            SystemMessage(content=REFINE_WITH_FEEDBACK_INSTRUCTION.format(
                justification=justification, feedback=feedback,
            )),
            HumanMessage(content=(
                f"Conversation History:\n{_history_lines(history)}\n\n"
                f'Original User Query: "{original_query}"\n\n'
                f'Human Feedback: "{feedback}"\n\n'
                f'Confidence Issue: "{justification}"'
            )),
        ]
        response = await self._invoke(self._refine_llm, messages, "refine query with feedback")
        refined = message_text(response).strip()
        if not refined:
            raise OracleError("Failed to refine query with feedback: empty response.")
        return refined

    async def _rank_chunk_ids(self, query, chunks):
        preview_chars = self._settings.agentic_rag_rank_preview_chars
        previews = json.dumps([
            {"id": c.id, "content": c.content[:preview_chars] + "..."} for c in chunks
        ])
        messages = [
            SystemMessage(content=RANK_INSTRUCTION),
            HumanMessage(content=f'Query: "{query}"\n\nDocument Chunks: {previews}'),
        ]
        response = await self._invoke(get_llm, messages, "rank chunks")
        ids = _parse_json_object(message_text(response)).get("relevantChunkIds") or []
        if not isinstance(ids, list):
            raise OracleError("relevantChunkIds must be a list")
        return [str(i) for i in ids]

    async def generate_answer(self, query, history, internal_context, use_web_search):
        instruction = GENERATE_INSTRUCTION
        if internal_context:
            instruction += (
                "\n\nFirst, prioritize the following internal context provided from the "
                f"user's documents:\n<internal_context>\n{internal_context}\n</internal_context>"
            )
        if use_web_search:
            instruction += (
                "\n\nYou should also use web search to find up-to-date information if the "
                "internal context and conversation history are insufficient."
            )
        else:
            instruction += (
                "\n\nBase your answer ONLY on the provided internal context and conversation "
                "history. Do not use external knowledge unless it's to clarify concepts "
                "from the context."
            )

        messages = [
            SystemMessage(content=instruction),
            *_history_messages(history),
            HumanMessage(content=query),
        ]
        response = await self._invoke(
            get_search_llm if use_web_search else get_llm, messages, "generate response"
        )
        text = message_text(response)
        if not text.strip():
            raise OracleError("Failed to generate response: empty response.")
        sources = extract_web_sources(response) if use_web_search else []
        return GenerationResult(text=text, sources=sources)

    async def enhance_with_web_search(self, prior_text, query, history, internal_context):
        instruction = ENHANCE_INSTRUCTION.format(prior_text=prior_text)
        if internal_context:
            instruction += f"\n\nInternal Context from Documents:\n{internal_context}"

        messages = [
            SystemMessage(content=instruction),
            *_history_messages(history),
            HumanMessage(content=query),
        ]
        response = await self._invoke(get_search_llm, messages, "enhance response with web search")
        text = message_text(response)
        if not text.strip():
            raise OracleError("Failed to enhance response with web search: empty response.")
        return GenerationResult(text=text, sources=extract_web_sources(response))

    async def _evaluate(self, original_query, answer_text, history):
        preview_chars = self._settings.agentic_rag_evaluation_preview_chars
        messages = [
            SystemMessage(content=EVALUATE_INSTRUCTION),
            HumanMessage(content=(
                f"Conversation History:\n{_history_lines(history)}\n\n"
                f'Original User Query: "{original_query}"\n\n'
                f'Generated Response to last query: "{answer_text[:preview_chars]}..."\n\n'
                "Please evaluate."
            )),
        ]
        response = await self._invoke(get_llm, messages, "evaluate response")
        parsed = _parse_json_object(message_text(response))

        try:
            score = int(parsed.get("confidenceScore") or 0)
        except (TypeError, ValueError) as e:
            raise OracleError(f"confidenceScore is not a number: {parsed.get('confidenceScore')!r}") from e

        return Evaluation(
            confidence_score=max(0, min(100, score)),
            justification=str(parsed.get("justification") or "No justification provided."),
        )
