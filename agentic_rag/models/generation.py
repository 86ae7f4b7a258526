"""Oracle response data models."""

from dataclasses import dataclass, field

from agentic_rag.models.conversation import Source


@dataclass(frozen=True)
class GenerationResult:
    """An answer draft plus the web sources it was grounded on."""

    text: str
    sources: list[Source] = field(default_factory=list)


@dataclass(frozen=True)
class Evaluation:
    """Sufficiency score (0-100) with a one-line justification."""

    confidence_score: int
    justification: str

    def __post_init__(self):
        if not 0 <= self.confidence_score <= 100:
            raise ValueError(
                f"confidence_score must be between 0 and 100, got {self.confidence_score}"
            )
