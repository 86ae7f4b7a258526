"""Local, model-free retrieval helpers.

- keyword_overlap_filter: degraded-mode ranking used when the oracle fails
- build_internal_context: renders chunks into the context string sent to the oracle
- match_context_chunks: recovers which chunks a context string was built from
- extract_key_terms: lightweight query analysis for the pre-analysis stage
"""

import re

from agentic_rag.models.chunk import DocumentChunk

CONTEXT_SEPARATOR = "\n---\n"

STOP_WORDS = frozenset({
    "a", "about", "above", "after", "again", "all", "also", "an", "and", "any",
    "are", "as", "at", "be", "been", "before", "being", "between", "both", "but",
    "by", "can", "could", "did", "do", "does", "doing", "during", "each", "for",
    "from", "had", "has", "have", "having", "how", "into", "its", "just", "may",
    "more", "most", "not", "now", "of", "off", "on", "once", "only", "or", "other",
    "our", "out", "over", "own", "same", "should", "some", "such", "than", "that",
    "the", "their", "them", "then", "there", "these", "they", "this", "those",
    "through", "too", "under", "until", "very", "was", "were", "what", "when",
    "where", "which", "while", "who", "whom", "why", "will", "with", "would",
    "you", "your",
})

_WORD_PATTERN = re.compile(r"[\w'-]+")


def keyword_overlap_filter(query: str, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
    """Keep chunks containing any whitespace-separated query token.

    Case-insensitive substring containment; order of ``chunks`` is preserved.
    """
    keywords = [k for k in query.lower().split() if k]
    if not keywords:
        return []
    return [
        chunk for chunk in chunks
        if any(keyword in chunk.content.lower() for keyword in keywords)
    ]


def build_internal_context(chunks: list[DocumentChunk]) -> str:
    """Render chunks as ``Source File: ...`` / ``Content: ...`` blocks."""
    return CONTEXT_SEPARATOR.join(
        f"Source File: {c.source_file}\nContent: {c.content}" for c in chunks
    )


def match_context_chunks(
    internal_context: str,
    chunks: list[DocumentChunk],
    prefix_chars: int = 100,
) -> list[DocumentChunk]:
    """Best-effort recovery of the chunks an internal context was built from.

    A chunk matches when its first ``prefix_chars`` characters appear verbatim
    in the context string. True members always match; unrelated chunks sharing
    a prefix with a member match too, so treat the result as an approximation.
    """
    if not internal_context:
        return []
    return [c for c in chunks if c.content[:prefix_chars] in internal_context]


def extract_key_terms(query: str, limit: int = 8) -> list[str]:
    """Distinct content words of a query, in order of first appearance."""
    terms: list[str] = []
    for word in _WORD_PATTERN.findall(query.lower()):
        word = word.strip("'-")
        if len(word) < 3 or word in STOP_WORDS or word in terms:
            continue
        terms.append(word)
        if len(terms) >= limit:
            break
    return terms
