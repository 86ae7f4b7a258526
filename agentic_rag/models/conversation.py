"""Conversation turn and web source data models."""

import uuid
from dataclasses import dataclass

from agentic_rag.models.chunk import DocumentChunk
from agentic_rag.models.enums import Role


@dataclass(frozen=True)
class Source:
    """A web page the model grounded its answer on."""

    uri: str
    title: str


@dataclass(frozen=True)
class ConversationTurn:
    """One user or model message in the conversation ledger."""

    role: Role
    text: str
    sources: tuple[Source, ...] = ()
    retrieved_chunks: tuple[DocumentChunk, ...] = ()
    id: str = ""

    def __post_init__(self):
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
        if not self.id:
            object.__setattr__(self, "id", f"{self.role.value}-{uuid.uuid4().hex[:12]}")
        object.__setattr__(self, "sources", tuple(self.sources))
        object.__setattr__(self, "retrieved_chunks", tuple(self.retrieved_chunks))


def user_turn(text: str) -> ConversationTurn:
    return ConversationTurn(role=Role.USER, text=text)


def model_turn(
    text: str,
    sources: tuple[Source, ...] | list[Source] = (),
    retrieved_chunks: tuple[DocumentChunk, ...] | list[DocumentChunk] = (),
) -> ConversationTurn:
    return ConversationTurn(
        role=Role.MODEL,
        text=text,
        sources=tuple(sources),
        retrieved_chunks=tuple(retrieved_chunks),
    )


def error_turn(message: str) -> ConversationTurn:
    """Model turn surfacing a pipeline failure to the user."""
    return ConversationTurn(
        role=Role.MODEL,
        text=f"Sorry, an error occurred: {message}",
        id=f"error-{uuid.uuid4().hex[:12]}",
    )
