"""LLM provider configuration using LangChain abstractions."""

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.runnables import Runnable

from config.settings import get_settings


def get_llm(temperature: float = 0.0) -> BaseChatModel:
    """Create and return the configured LLM instance.

    Uses LangChain's BaseChatModel abstraction for LLM-agnostic access.
    Default: Google Gemini via langchain-google-genai.
    """
    settings = get_settings()
    provider = settings.agentic_rag_llm_provider.lower()

    if provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=settings.agentic_rag_llm_model,
            temperature=temperature,
            google_api_key=settings.google_api_key or None,
        )
    elif provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=settings.agentic_rag_llm_model,
            temperature=temperature,
            api_key=settings.anthropic_api_key,
        )
    else:
        raise ValueError(
            f"Unsupported LLM provider: {provider}. "
            "Supported: 'google', 'anthropic'"
        )


def get_search_llm() -> Runnable:
    """Return the configured LLM with the provider's live web search tool bound.

    Google models use Search grounding; Anthropic models use the server-side
    web search tool. Both run the search inside the model call.
    """
    settings = get_settings()
    provider = settings.agentic_rag_llm_provider.lower()
    llm = get_llm()

    if provider == "google":
        return llm.bind_tools([{"google_search": {}}])
    return llm.bind_tools([{
        "type": "web_search_20250305",
        "name": "web_search",
        "max_uses": settings.agentic_rag_web_search_max_uses,
    }])
