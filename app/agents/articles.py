# app/agents/articles.py
from typing import Any

from app.agents.llm.base import LLMFactory
from app.agents.pipeline import StructuredRun, run_structured
from app.agents.schemas import ARTICLE_TYPES, GenerationTask, TaskType
from app.errors import InvalidInput


def article_task(
    article_type: str | None,
    tickers: list[str] | None,
    news_items: list[Any] | None = None,
    custom_prompt: str | None = None,
    model_name: str | None = None,
) -> GenerationTask:
    """Check the request and build the task; raises InvalidInput before any LLM work."""
    if article_type not in {t.value for t in ARTICLE_TYPES}:
        raise InvalidInput("Valid type is required: TICKER_ANALYSIS, NEWS_SUMMARY, or MARKET_OVERVIEW.")
    task_type = TaskType(article_type)

    if task_type == TaskType.TICKER_ANALYSIS and not tickers:
        raise InvalidInput("Tickers array is required for TICKER_ANALYSIS type.")

    return GenerationTask(
        task_type=task_type,
        parameters={
            "tickers": [t.strip().upper() for t in (tickers or []) if t and t.strip()],
            "news_items": news_items or [],
            "custom_prompt": (custom_prompt or "").strip() or None,
            "model_name": model_name,
        },
    )


def generate_article(task: GenerationTask, llm_factory: LLMFactory) -> StructuredRun:
    llm = llm_factory()
    if not task.parameters.get("model_name"):
        task.parameters["model_name"] = llm.model
    return run_structured(llm, task)
