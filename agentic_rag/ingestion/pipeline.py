"""Ingestion pipeline orchestrator.

Wires together: extractor → chunker, one concurrent task per file.
The batch is all-or-nothing: results are only returned once every file
has been processed successfully.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from agentic_rag.ingestion.chunker import DEFAULT_MAX_CHUNK_CHARS, chunk_text
from agentic_rag.ingestion.extractor import FileProcessingError, extract_text
from agentic_rag.models.chunk import DocumentChunk

logger = logging.getLogger(__name__)


def source_labels(paths: list[Path]) -> list[str]:
    """Chunk-id prefixes for a batch, unique within the batch.

    Files are labelled by name; names repeated in the batch are qualified
    with their parent directory, then with the full path. A path listed
    more than once gets an occurrence suffix.
    """
    names = [p.name for p in paths]
    labels = [
        name if names.count(name) == 1 else f"{p.parent.name}/{name}"
        for p, name in zip(paths, names)
    ]
    labels = [
        label if labels.count(label) == 1 else p.as_posix()
        for p, label in zip(paths, labels)
    ]
    seen: dict[str, int] = {}
    unique = []
    for label in labels:
        count = seen.get(label, 0)
        seen[label] = count + 1
        unique.append(label if count == 0 else f"{label}#{count}")
    return unique


async def process_file(
    path: Path,
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
    log: Callable[[str], None] = logger.info,
    source_label: str | None = None,
) -> list[DocumentChunk] | None:
    """Extract and chunk one file. Returns None when the type is unsupported.

    Chunks are labelled with ``source_label``, defaulting to the file name.
    """
    log(f"Extracting text from: {path.name}")
    try:
        text = await asyncio.to_thread(extract_text, path)
    except FileProcessingError as e:
        log(f"Failed to process file {path.name}: {e.reason}")
        raise

    if text is None:
        log(f"Skipping unsupported file type: {path.name} ({path.suffix or 'no extension'})")
        return None

    chunks = chunk_text(text, source_label or path.name, max_chunk_chars)
    log(f"Processed {path.name}, created {len(chunks)} chunks.")
    return chunks


async def run_ingestion_pipeline(
    paths: list[Path | str],
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
    log: Callable[[str], None] = logger.info,
) -> dict:
    """Process a batch of files concurrently.

    Steps:
    1. Extract text from every file in its own task (file IO off the event loop)
    2. Chunk each text into fixed-size windows
    3. Join all results; if any file failed, raise its FileProcessingError

    Returns a dict with the ordered chunks and file counts.
    """
    resolved = [Path(p) for p in paths]
    labels = source_labels(resolved)
    results = await asyncio.gather(
        *(
            process_file(p, max_chunk_chars, log, label)
            for p, label in zip(resolved, labels)
        ),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        raise failures[0]

    chunks: list[DocumentChunk] = []
    files_skipped = 0
    for result in results:
        if result is None:
            files_skipped += 1
            continue
        chunks.extend(result)

    return {
        "chunks": chunks,
        "files_processed": len(resolved) - files_skipped,
        "files_skipped": files_skipped,
    }
