from app.settings import settings
from app.agents.llm.base import LLMClient
from app.agents.llm.openrouter import OpenRouterClient
from app.agents.llm.openai_compat import OpenAICompatClient
from app.errors import ConfigurationError

def get_llm_client() -> LLMClient:
    """Build a client for the configured provider; fails before any network call when unconfigured."""
    retry = {
        "max_retries": settings.llm_max_retries,
        "retry_backoff": settings.llm_retry_backoff_seconds,
    }

    if settings.LLM_PROVIDER == "openai":
        if not settings.OPENAI_API_KEY:
            raise ConfigurationError("OPENAI_API_KEY is not configured.")
        return OpenAICompatClient(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            model=settings.LLM_MODEL,
            timeout=settings.llm_timeout_seconds,
            **retry,
        )

    if settings.LLM_PROVIDER != "openrouter":
        raise ConfigurationError(f"Unsupported LLM_PROVIDER: {settings.LLM_PROVIDER}")
    if not settings.OPENROUTER_API_KEY:
        raise ConfigurationError("OPENROUTER_API_KEY is not configured.")
    return OpenRouterClient(
        api_key=settings.OPENROUTER_API_KEY,
        base_url=settings.OPENROUTER_BASE_URL,
        model=settings.LLM_MODEL,
        timeout=settings.llm_timeout_seconds,
        site_url=settings.SITE_URL,
        app_title=settings.APP_TITLE,
        **retry,
    )
