# app/chat/routes.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.deps import get_db, get_llm_factory, get_price_lookup
from app.agents.chat import apply_portfolio_intent, chat_reply, portfolio_intent
from app.agents.llm.base import LLMFactory
from app.agents.portfolio import PriceLookup
from app.agents.schemas import ModelMessage
from app.errors import InvalidInput
from app.portfolios.routes import parse_portfolio_id

router = APIRouter()


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    ticker: str | None = None
    portfolio_id: str | None = Field(None, alias="portfolioId")
    history: list[ModelMessage] = Field(default_factory=list)


@router.post("/ticker-chat")
def ticker_chat(
    body: ChatRequest,
    db: Session = Depends(get_db),
    llm_factory: LLMFactory = Depends(get_llm_factory),
    prices: PriceLookup = Depends(get_price_lookup),
):
    if not body.ticker:
        raise InvalidInput("Ticker symbol is required")
    if not body.message or not body.message.strip():
        raise InvalidInput("Message is required")

    intent = portfolio_intent(body.message)
    if intent:
        if not body.portfolio_id:
            raise InvalidInput("Portfolio ID is required for this operation")
        result = apply_portfolio_intent(
            db,
            prices,
            intent=intent,
            ticker=body.ticker,
            portfolio_id=parse_portfolio_id(body.portfolio_id),
        )
        return JSONResponse(result)

    reply = chat_reply(
        body.ticker,
        body.message,
        llm_factory,
        history=body.history,
        portfolio_id=body.portfolio_id,
    )
    return JSONResponse(reply.model_dump(mode="json"))
