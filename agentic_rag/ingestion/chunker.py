"""Fixed-size character chunker for extracted document text."""

from agentic_rag.models.chunk import DocumentChunk

DEFAULT_MAX_CHUNK_CHARS = 1000


def chunk_text(
    text: str,
    source_label: str,
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
) -> list[DocumentChunk]:
    """Split text into non-overlapping windows of ``max_chunk_chars`` characters.

    The last window may be shorter. Chunk ids are ``<source_label>-<index>``
    and every chunk carries ``source_label`` as its source file.
    """
    if max_chunk_chars <= 0:
        raise ValueError(f"max_chunk_chars must be > 0, got {max_chunk_chars}")

    return [
        DocumentChunk(
            id=f"{source_label}-{idx}",
            content=text[start:start + max_chunk_chars],
            source_file=source_label,
        )
        for idx, start in enumerate(range(0, len(text), max_chunk_chars))
    ]
