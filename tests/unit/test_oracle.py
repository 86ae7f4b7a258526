"""Unit tests for the LangChain model oracle with patched chat models."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.conversation import Source, model_turn, user_turn
from agentic_rag.oracle.base import FALLBACK_CONFIDENCE, FALLBACK_JUSTIFICATION, OracleError
from agentic_rag.oracle.langchain_oracle import (
    LangChainOracle,
    _parse_json_object,
    extract_web_sources,
    message_text,
)
from config.settings import Settings

LLM_PATH = "agentic_rag.oracle.langchain_oracle.get_llm"
SEARCH_LLM_PATH = "agentic_rag.oracle.langchain_oracle.get_search_llm"


def _mock_llm(content="", response_metadata=None, side_effect=None):
    llm = MagicMock()
    if side_effect is not None:
        llm.ainvoke = AsyncMock(side_effect=side_effect)
    else:
        llm.ainvoke = AsyncMock(
            return_value=AIMessage(content=content, response_metadata=response_metadata or {})
        )
    return llm


@pytest.fixture
def oracle():
    return LangChainOracle(Settings())


@pytest.fixture
def chunks():
    return [
        DocumentChunk(id="a.txt-0", content="Inflation eased over the past year.", source_file="a.txt"),
        DocumentChunk(id="a.txt-1", content="The weather was mild.", source_file="a.txt"),
        DocumentChunk(id="b.txt-0", content="Unemployment remained low.", source_file="b.txt"),
    ]


class TestJsonParsing:

    def test_strips_code_fences(self):
        assert _parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_malformed_json_raises(self):
        with pytest.raises(OracleError):
            _parse_json_object("not json")

    def test_non_object_raises(self):
        with pytest.raises(OracleError):
            _parse_json_object("[1, 2]")


class TestMessageText:

    def test_string_content(self):
        assert message_text(AIMessage(content="hello")) == "hello"

    def test_block_content(self):
        message = AIMessage(content=[
            {"type": "text", "text": "Hello "},
            {"type": "tool_use", "id": "t1", "name": "web_search", "input": {}},
            {"type": "text", "text": "world"},
        ])
        assert message_text(message) == "Hello world"


class TestExtractWebSources:

    def test_google_grounding_deduplicates_uris(self):
        message = AIMessage(content="answer", response_metadata={
            "grounding_metadata": {"grounding_chunks": [
                {"web": {"uri": "https://a.example", "title": "A"}},
                {"web": {"uri": "https://a.example", "title": "A again"}},
                {"web": {"uri": "https://b.example", "title": "B"}},
            ]}
        })
        assert extract_web_sources(message) == [
            Source("https://a.example", "A"),
            Source("https://b.example", "B"),
        ]

    def test_drops_entries_without_title(self):
        message = AIMessage(content="answer", response_metadata={
            "grounding_metadata": {"grounding_chunks": [
                {"web": {"uri": "https://a.example"}},
                {"web": {"title": "No uri"}},
            ]}
        })
        assert extract_web_sources(message) == []

    def test_anthropic_results_and_citations(self):
        message = AIMessage(content=[
            {
                "type": "text",
                "text": "Answer",
                "citations": [{"type": "web_search_result_location", "url": "https://b.example", "title": "B"}],
            },
            {
                "type": "web_search_tool_result",
                "tool_use_id": "srvtoolu_1",
                "content": [
                    {"type": "web_search_result", "url": "https://b.example", "title": "B"},
                    {"type": "web_search_result", "url": "https://c.example", "title": "C"},
                ],
            },
        ])
        assert extract_web_sources(message) == [
            Source("https://b.example", "B"),
            Source("https://c.example", "C"),
        ]

    def test_no_metadata(self):
        assert extract_web_sources(AIMessage(content="plain")) == []


class TestRefineQuery:

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self, oracle):
        llm = _mock_llm("  What is the 2024 inflation outlook?\n")
        with patch(LLM_PATH, return_value=llm) as get_llm:
            refined = await oracle.refine_query("inflation?", [user_turn("hi"), model_turn("hello")])

        assert refined == "What is the 2024 inflation outlook?"
        get_llm.assert_called_once_with(temperature=0.2)
        messages = llm.ainvoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert "user: hi" in messages[1].content
        assert "model: hello" in messages[1].content

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm(side_effect=ConnectionError("down"))):
            with pytest.raises(OracleError, match="Failed to refine query"):
                await oracle.refine_query("q", [])

    @pytest.mark.asyncio
    async def test_factory_error_is_wrapped(self, oracle):
        with patch(LLM_PATH, side_effect=ValueError("Unsupported LLM provider")):
            with pytest.raises(OracleError):
                await oracle.refine_query("q", [])

    @pytest.mark.asyncio
    async def test_feedback_is_in_prompt(self, oracle):
        llm = _mock_llm("narrower query")
        with patch(LLM_PATH, return_value=llm):
            refined = await oracle.refine_query_with_feedback(
                "q", [], "focus on 2024", "answer was vague"
            )

        assert refined == "narrower query"
        system, human = llm.ainvoke.call_args.args[0]
        assert "answer was vague" in system.content
        assert "focus on 2024" in human.content


class TestRankRelevantChunks:

    @pytest.mark.asyncio
    async def test_returns_ranked_subsequence_in_store_order(self, oracle, chunks):
        llm = _mock_llm('```json\n{"relevantChunkIds": ["b.txt-0", "a.txt-0", "unknown"]}\n```')
        with patch(LLM_PATH, return_value=llm):
            result = await oracle.rank_relevant_chunks("inflation and jobs", chunks)
        assert [c.id for c in result] == ["a.txt-0", "b.txt-0"]

    @pytest.mark.asyncio
    async def test_sends_truncated_previews(self, chunks):
        oracle = LangChainOracle(Settings(agentic_rag_rank_preview_chars=5))
        llm = _mock_llm('{"relevantChunkIds": []}')
        with patch(LLM_PATH, return_value=llm):
            result = await oracle.rank_relevant_chunks("q", chunks)

        assert result == []
        prompt = llm.ainvoke.call_args.args[0][1].content
        assert '"Infla..."' in prompt
        assert "eased" not in prompt

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back_to_keywords(self, oracle, chunks):
        with patch(LLM_PATH, return_value=_mock_llm("I think chunk a is relevant")):
            result = await oracle.rank_relevant_chunks("inflation", chunks)
        assert [c.id for c in result] == ["a.txt-0"]

    @pytest.mark.asyncio
    async def test_transport_error_falls_back_to_keywords(self, oracle, chunks):
        with patch(LLM_PATH, return_value=_mock_llm(side_effect=TimeoutError())):
            result = await oracle.rank_relevant_chunks("unemployment", chunks)
        assert [c.id for c in result] == ["b.txt-0"]

    @pytest.mark.asyncio
    async def test_empty_chunks_skip_the_model(self, oracle):
        with patch(LLM_PATH) as get_llm:
            assert await oracle.rank_relevant_chunks("q", []) == []
        get_llm.assert_not_called()


class TestGenerateAnswer:

    @pytest.mark.asyncio
    async def test_internal_only_uses_plain_model(self, oracle):
        llm = _mock_llm("From your documents...")
        with patch(LLM_PATH, return_value=llm), patch(SEARCH_LLM_PATH) as search:
            result = await oracle.generate_answer(
                "q", [user_turn("earlier"), model_turn("reply")], "Source File: a.txt\nContent: x", False
            )

        search.assert_not_called()
        assert result.text == "From your documents..."
        assert result.sources == []
        messages = llm.ainvoke.call_args.args[0]
        assert "<internal_context>" in messages[0].content
        assert "ONLY" in messages[0].content
        assert isinstance(messages[1], HumanMessage)
        assert isinstance(messages[2], AIMessage)
        assert messages[-1].content == "q"

    @pytest.mark.asyncio
    async def test_web_search_collects_sources(self, oracle):
        llm = _mock_llm("From the web...", response_metadata={
            "grounding_metadata": {"grounding_chunks": [
                {"web": {"uri": "https://a.example", "title": "A"}},
                {"web": {"uri": "https://a.example", "title": "A"}},
            ]}
        })
        with patch(SEARCH_LLM_PATH, return_value=llm), patch(LLM_PATH) as plain:
            result = await oracle.generate_answer("q", [], "", True)

        plain.assert_not_called()
        assert result.sources == [Source("https://a.example", "A")]

    @pytest.mark.asyncio
    async def test_empty_answer_raises(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm("   ")):
            with pytest.raises(OracleError):
                await oracle.generate_answer("q", [], "ctx", False)


class TestEnhanceWithWebSearch:

    @pytest.mark.asyncio
    async def test_prompt_carries_prior_answer_and_context(self, oracle):
        llm = _mock_llm("Better answer")
        with patch(SEARCH_LLM_PATH, return_value=llm):
            result = await oracle.enhance_with_web_search(
                "Old answer", "q", [], "Source File: a.txt\nContent: facts"
            )

        assert result.text == "Better answer"
        system = llm.ainvoke.call_args.args[0][0].content
        assert "Old answer" in system
        assert "Content: facts" in system

    @pytest.mark.asyncio
    async def test_failure_raises(self, oracle):
        with patch(SEARCH_LLM_PATH, return_value=_mock_llm(side_effect=RuntimeError("quota"))):
            with pytest.raises(OracleError, match="enhance"):
                await oracle.enhance_with_web_search("Old", "q", [], "")


class TestEvaluateSufficiency:

    @pytest.mark.asyncio
    async def test_parses_score(self, oracle):
        llm = _mock_llm('{"confidenceScore": 82, "justification": "Complete and accurate."}')
        with patch(LLM_PATH, return_value=llm):
            evaluation = await oracle.evaluate_sufficiency("q", "answer", [])
        assert evaluation.confidence_score == 82
        assert evaluation.justification == "Complete and accurate."

    @pytest.mark.asyncio
    async def test_clamps_out_of_range_scores(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm('{"confidenceScore": 150, "justification": "x"}')):
            high = await oracle.evaluate_sufficiency("q", "a", [])
        with patch(LLM_PATH, return_value=_mock_llm('{"confidenceScore": -20, "justification": "x"}')):
            low = await oracle.evaluate_sufficiency("q", "a", [])
        assert high.confidence_score == 100
        assert low.confidence_score == 0

    @pytest.mark.asyncio
    async def test_missing_justification(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm('{"confidenceScore": 70}')):
            evaluation = await oracle.evaluate_sufficiency("q", "a", [])
        assert evaluation.justification == "No justification provided."

    @pytest.mark.asyncio
    async def test_truncates_answer_preview(self):
        oracle = LangChainOracle(Settings(agentic_rag_evaluation_preview_chars=10))
        llm = _mock_llm('{"confidenceScore": 50, "justification": "x"}')
        with patch(LLM_PATH, return_value=llm):
            await oracle.evaluate_sufficiency("q", "0123456789ABCDEF", [])
        prompt = llm.ainvoke.call_args.args[0][1].content
        assert "0123456789..." in prompt
        assert "ABCDEF" not in prompt

    @pytest.mark.asyncio
    async def test_malformed_response_uses_default(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm("Looks good to me!")):
            evaluation = await oracle.evaluate_sufficiency("q", "a", [])
        assert evaluation.confidence_score == FALLBACK_CONFIDENCE == 30
        assert evaluation.justification == FALLBACK_JUSTIFICATION

    @pytest.mark.asyncio
    async def test_non_numeric_score_uses_default(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm('{"confidenceScore": "high"}')):
            evaluation = await oracle.evaluate_sufficiency("q", "a", [])
        assert evaluation.confidence_score == 30

    @pytest.mark.asyncio
    async def test_transport_error_uses_default(self, oracle):
        with patch(LLM_PATH, return_value=_mock_llm(side_effect=ConnectionError())):
            evaluation = await oracle.evaluate_sufficiency("q", "a", [])
        assert evaluation.confidence_score == 30
