# app/agents/portfolio.py
from dataclasses import dataclass
from typing import Any, Protocol

from app.agents.llm.base import LLMFactory
from app.agents.persistence import ResolvedHolding
from app.agents.pipeline import StructuredRun, run_structured
from app.agents.schemas import GenerationTask, PortfolioDraft, SentimentReport, TaskType
from app.errors import InvalidInput, UnparsableReply
from app.log import get_logger

logger = get_logger(__name__)


class PriceLookup(Protocol):
    def current_price(self, ticker: str) -> float | None: ...


@dataclass
class SentimentOutcome:
    """Either a validated report or the raw text of a non-JSON reply."""
    report: SentimentReport | None = None
    raw: str | None = None
    tokens_used: int | None = None


def summarize_portfolio(
    portfolio_id: str,
    holdings: list[dict[str, Any]],
    llm_factory: LLMFactory,
) -> SentimentOutcome:
    task = GenerationTask(
        task_type=TaskType.PORTFOLIO_SENTIMENT,
        parameters={"portfolio_id": portfolio_id, "holdings": holdings},
    )
    llm = llm_factory()
    try:
        run = run_structured(llm, task)
    except UnparsableReply as e:
        # Recoverable: hand the text back instead of failing the request
        return SentimentOutcome(raw=e.raw_text)
    return SentimentOutcome(report=run.result, tokens_used=run.tokens_used)


def extract_portfolio(prompt: str | None, llm_factory: LLMFactory) -> StructuredRun:
    if not prompt or not prompt.strip():
        raise InvalidInput("Prompt is required")
    task = GenerationTask(
        task_type=TaskType.PORTFOLIO_EXTRACTION,
        parameters={"prompt": prompt.strip()},
    )
    return run_structured(llm_factory(), task)


def resolve_holdings(draft: PortfolioDraft, prices: PriceLookup) -> list[ResolvedHolding]:
    """
    Fill in prices and quantities for the drafted holdings.

    A price is looked up when the model gave none, or when the quantity has to
    be derived from an allocation percentage of the total investment. Holdings
    that still have no positive quantity are dropped. A non-positive price from
    the model counts as missing.
    """
    resolved: list[ResolvedHolding] = []
    total = draft.total_investment

    for h in draft.holdings:
        quantity = h.quantity
        price = h.average_price if h.average_price and h.average_price > 0 else None
        by_allocation = bool(h.allocation_percentage and total)

        if not price or by_allocation:
            fetched = prices.current_price(h.ticker)
            if fetched:
                price = fetched
            elif not price:
                logger.warning("Could not fetch price for %s", h.ticker)
                price = 0.0

        if not quantity and by_allocation and price > 0:
            quantity = (total * h.allocation_percentage / 100) / price

        if quantity and quantity > 0:
            resolved.append(ResolvedHolding(ticker=h.ticker.upper(), quantity=quantity, average_price=price))

    return resolved
