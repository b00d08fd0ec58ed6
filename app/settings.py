## Application settings configuration

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    log_level: str = "INFO"

    # Secrets are optional here; the code that needs them raises ConfigurationError
    database_url: str | None = None
    redis_url: str = "redis://localhost:6379/0"

    # Completion service
    LLM_PROVIDER: str = "openrouter"
    LLM_MODEL: str = "x-ai/grok-4-fast:free"
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.groq.com/openai/v1"
    llm_timeout_seconds: float = 120.0
    llm_max_retries: int = 0
    llm_retry_backoff_seconds: float = 1.0

    SITE_URL: str = ""
    APP_TITLE: str = "Stockfolio"
    ALLOWED_ORIGIN: str = "*"

    # Daily posts job
    DAILY_POSTS_USER_ID: str | None = None
    daily_posts_hour_utc: int = 12

    # Price lookup
    PRICE_API_BASE_URL: str = "https://query1.finance.yahoo.com"
    price_timeout_seconds: float = 10.0


settings = Settings()
