# app/portfolios/routes.py
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.deps import get_db, get_llm_factory, get_price_lookup
from app.auth.deps import get_current_user_id
from app.agents.llm.base import LLMFactory
from app.agents.persistence import save_portfolio
from app.agents.portfolio import PriceLookup, extract_portfolio, resolve_holdings, summarize_portfolio
from app.db import queries
from app.errors import InvalidInput, NotFound

router = APIRouter(prefix="/portfolios")


class PortfolioSummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    portfolio_id: str | None = Field(None, alias="portfolioId")


class GeneratePortfolioRequest(BaseModel):
    prompt: str | None = None


def parse_portfolio_id(raw: str | None) -> uuid.UUID:
    if not raw:
        raise InvalidInput("Missing portfolioId in JSON body.")
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise InvalidInput("Invalid portfolioId.")


@router.post("/summary")
def portfolio_summary(
    body: PortfolioSummaryRequest,
    db: Session = Depends(get_db),
    llm_factory: LLMFactory = Depends(get_llm_factory),
):
    portfolio_id = parse_portfolio_id(body.portfolio_id)

    holdings = queries.list_holdings(db, portfolio_id)
    if not holdings:
        raise NotFound("No holdings found for the given portfolioId.")

    outcome = summarize_portfolio(str(portfolio_id), holdings, llm_factory)
    if outcome.report is None:
        return JSONResponse({
            "success": False,
            "warning": "LLM output was not valid JSON.",
            "raw": outcome.raw,
        })
    return JSONResponse({"success": True, "result": outcome.report.model_dump()})


@router.post("/generate")
def generate_portfolio(
    body: GeneratePortfolioRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    llm_factory: LLMFactory = Depends(get_llm_factory),
    prices: PriceLookup = Depends(get_price_lookup),
):
    run = extract_portfolio(body.prompt, llm_factory)
    draft = run.result

    if draft.missing_info:
        return JSONResponse({
            "success": False,
            "message": "Missing information",
            "missing_info": draft.missing_info,
        })

    holdings = resolve_holdings(draft, prices)
    outcome = save_portfolio(
        db,
        user_id=user_id,
        name=draft.name,
        description=draft.description,
        holdings=holdings,
    )
    outcome.raise_for_failure("Failed to create portfolio.")

    payload = {
        "success": True,
        "portfolio_id": str(outcome.record.id),
        "message": "Portfolio created successfully",
        "holdings_count": len(holdings),
    }
    if outcome.partial:
        payload["message"] = "Portfolio created with errors"
        payload["holdings_count"] = 0
        payload["warning"] = outcome.warning
    return JSONResponse(payload)
