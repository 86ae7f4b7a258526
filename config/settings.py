"""Application configuration management."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Agentic RAG settings loaded from environment variables."""

    # Provider credentials
    anthropic_api_key: str = ""
    google_api_key: str = ""

    # LLM
    agentic_rag_llm_provider: str = "google"
    agentic_rag_llm_model: str = "gemini-2.5-flash"
    agentic_rag_refine_temperature: float = 0.2
    agentic_rag_web_search_max_uses: int = 5

    # Workflow
    agentic_rag_confidence_threshold: int = 75

    # Ingestion
    agentic_rag_max_chunk_chars: int = 1000

    # Oracle payload limits
    agentic_rag_rank_preview_chars: int = 200
    agentic_rag_evaluation_preview_chars: int = 2000
    agentic_rag_context_match_chars: int = 100

    # Session
    agentic_rag_session_path: str = "./data/session.json"

    @property
    def session_path(self) -> Path:
        return Path(self.agentic_rag_session_path)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
