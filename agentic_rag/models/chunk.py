"""Document Chunk data model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentChunk:
    """A fixed-size slice of an ingested document, addressable by id."""

    id: str
    content: str
    source_file: str

    def __post_init__(self):
        if not self.id:
            raise ValueError("id must not be empty")
        if not self.content:
            raise ValueError("content must not be empty")
