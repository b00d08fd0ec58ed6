# app/agents/chat.py
import re
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.agents.llm.base import LLMFactory
from app.agents.persistence import ResolvedHolding, add_holding, remove_holdings
from app.agents.pipeline import invoke
from app.agents.portfolio import PriceLookup
from app.agents.schemas import ChatReply, GenerationTask, ModelMessage, TaskType
from app.log import get_logger

logger = get_logger(__name__)

REPLY_MAX_CHARS = 300
TRUNCATED_AT_CHARS = 290
EMPTY_REPLY = "Sorry, I could not process your request."

ADD_INTENT = "add to portfolio"
REMOVE_INTENT = "remove from portfolio"


def condense_reply(text: str) -> str:
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\.\s+\.", ".", text)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = text.strip()

    if len(text) > REPLY_MAX_CHARS:
        # cut at the last full sentence that starts before the limit
        cut = text.rfind(". ", 0, REPLY_MAX_CHARS + 2)
        if cut > 0:
            text = text[: cut + 1]
    return text


def portfolio_intent(message: str) -> str | None:
    lowered = message.lower()
    if ADD_INTENT in lowered:
        return "added"
    if REMOVE_INTENT in lowered:
        return "removed"
    return None


def apply_portfolio_intent(
    db: Session,
    prices: PriceLookup,
    *,
    intent: str,
    ticker: str,
    portfolio_id: uuid.UUID,
) -> dict[str, Any]:
    """Add one share at the current price, or drop every row for the ticker."""
    ticker = ticker.upper()
    if intent == "added":
        price = prices.current_price(ticker) or 0.0
        outcome = add_holding(
            db,
            portfolio_id=portfolio_id,
            holding=ResolvedHolding(ticker=ticker, quantity=1, average_price=price),
        )
        outcome.raise_for_failure("Failed to add holding")
        message = f"Successfully added 1 share(s) of {ticker} to portfolio {portfolio_id}"
    else:
        outcome = remove_holdings(db, portfolio_id=portfolio_id, ticker=ticker)
        outcome.raise_for_failure("Failed to remove holding")
        message = f"Successfully removed {outcome.dependents_written} holding(s) of {ticker} from portfolio {portfolio_id}"

    logger.info(message)
    return {"success": True, "message": message}


def chat_reply(
    ticker: str,
    message: str,
    llm_factory: LLMFactory,
    *,
    history: list[ModelMessage] | None = None,
    portfolio_id: str | None = None,
) -> ChatReply:
    task = GenerationTask(
        task_type=TaskType.TICKER_CHAT,
        parameters={
            "ticker": ticker,
            "message": message,
            "history": history or [],
            "portfolio_id": portfolio_id,
        },
    )
    reply = invoke(llm_factory(), task)

    content = condense_reply(reply.text) or EMPTY_REPLY
    return ChatReply(
        response=content,
        ticker=ticker,
        timestamp=datetime.now(timezone.utc),
        is_truncated=content.endswith("...") or len(content) >= TRUNCATED_AT_CHARS,
    )
