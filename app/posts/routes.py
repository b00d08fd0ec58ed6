# app/posts/routes.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.deps import get_db, get_llm_factory
from app.agents.llm.base import LLMFactory
from app.agents.posts import publish_daily_posts

router = APIRouter(prefix="/posts")


@router.post("/daily")
def daily_posts(
    db: Session = Depends(get_db),
    llm_factory: LLMFactory = Depends(get_llm_factory),
):
    _, outcome = publish_daily_posts(db, llm_factory)
    return JSONResponse({"success": True, "inserted": outcome.dependents_written})
