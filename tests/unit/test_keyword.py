"""Unit tests for model-free retrieval helpers."""

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.retrieval.keyword import (
    CONTEXT_SEPARATOR,
    build_internal_context,
    extract_key_terms,
    keyword_overlap_filter,
    match_context_chunks,
)


def _chunk(chunk_id, content, source="doc.txt"):
    return DocumentChunk(id=chunk_id, content=content, source_file=source)


class TestKeywordOverlapFilter:

    def test_keeps_chunks_with_any_token(self):
        chunks = [
            _chunk("a", "Inflation has eased"),
            _chunk("b", "Weather was sunny"),
            _chunk("c", "Unemployment is LOW"),
        ]
        result = keyword_overlap_filter("inflation low", chunks)
        assert [c.id for c in result] == ["a", "c"]

    def test_matches_substrings(self):
        chunks = [_chunk("a", "disinflationary pressure")]
        assert keyword_overlap_filter("inflation", chunks) == chunks

    def test_blank_query_matches_nothing(self):
        assert keyword_overlap_filter("   ", [_chunk("a", "anything")]) == []


class TestBuildInternalContext:

    def test_renders_source_blocks(self):
        chunks = [_chunk("a", "First", "one.txt"), _chunk("b", "Second", "two.pdf")]
        context = build_internal_context(chunks)
        assert context == (
            "Source File: one.txt\nContent: First"
            + CONTEXT_SEPARATOR
            + "Source File: two.pdf\nContent: Second"
        )

    def test_no_chunks_is_empty(self):
        assert build_internal_context([]) == ""


class TestMatchContextChunks:

    def test_recovers_members(self):
        members = [_chunk("a", "alpha " * 30), _chunk("b", "beta " * 30)]
        other = _chunk("c", "gamma " * 30)
        context = build_internal_context(members)
        assert match_context_chunks(context, members + [other]) == members

    def test_empty_context_matches_nothing(self):
        assert match_context_chunks("", [_chunk("a", "alpha")]) == []

    def test_shared_prefix_is_over_inclusive(self):
        member = _chunk("a", "shared prefix then one thing")
        lookalike = _chunk("b", "shared prefix then another")
        context = build_internal_context([member])
        result = match_context_chunks(context, [member, lookalike], prefix_chars=13)
        assert result == [member, lookalike]


class TestExtractKeyTerms:

    def test_drops_stop_words_and_short_tokens(self):
        assert extract_key_terms("What is the outlook for US inflation?") == ["outlook", "inflation"]

    def test_deduplicates_in_order(self):
        assert extract_key_terms("rates rates and more Rates policy") == ["rates", "policy"]

    def test_respects_limit(self):
        terms = extract_key_terms("alpha bravo charlie delta echo foxtrot", limit=3)
        assert terms == ["alpha", "bravo", "charlie"]

    def test_only_stop_words(self):
        assert extract_key_terms("what is it") == []
