# app/articles/routes.py
import math
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.deps import get_db, get_llm_factory
from app.agents.articles import article_task, generate_article
from app.agents.llm.base import LLMFactory
from app.agents.persistence import save_article
from app.agents.schemas import ARTICLE_TYPES, GenerationTask
from app.db import queries
from app.errors import InvalidInput, NotFound
from app.log import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/articles")

MAX_PAGE_SIZE = 50


class GenerateArticleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    tickers: list[str] | None = None
    news_data: list[Any] | None = Field(None, alias="newsData")
    custom_prompt: str | None = Field(None, alias="customPrompt")


class ListArticlesRequest(BaseModel):
    page: int = 1
    limit: int = 10
    article_type: str | None = None
    tickers: list[str] | None = None
    tags: list[str] | None = None
    status: str = "published"
    sort_by: str = "created_at"
    sort_order: str = "desc"


class ArticleDetailRequest(BaseModel):
    article_id: str | None = None
    slug: str | None = None
    increment_views: bool = True


def article_request_task(body: GenerateArticleRequest) -> GenerationTask:
    # Listed before get_db so bad input is a 400 even without a database
    return article_task(body.type, body.tickers, body.news_data, body.custom_prompt)


@router.post("/generate")
def generate(
    task: GenerationTask = Depends(article_request_task),
    db: Session = Depends(get_db),
    llm_factory: LLMFactory = Depends(get_llm_factory),
):
    run = generate_article(task, llm_factory)

    outcome = save_article(
        db,
        run.result,
        article_type=task.task_type.value,
        tickers=task.parameters["tickers"],
    )
    outcome.raise_for_failure("Failed to save article to database.")

    payload: dict[str, Any] = {
        "success": True,
        "article": queries.article_to_dict(outcome.record, include_content=True),
        "metadata": {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "tokens_used": run.tokens_used,
        },
    }
    if outcome.partial:
        payload["warning"] = outcome.warning
    return JSONResponse(payload)


@router.post("/list")
def list_articles(body: ListArticlesRequest, db: Session = Depends(get_db)):
    page = max(1, body.page)
    limit = min(MAX_PAGE_SIZE, max(1, body.limit))
    article_type = body.article_type if body.article_type in {t.value for t in ARTICLE_TYPES} else None

    filters = queries.ArticleFilters(
        status=body.status,
        article_type=article_type,
        tickers=body.tickers or [],
        tags=body.tags or [],
    )
    articles = queries.list_articles(
        db,
        filters,
        offset=(page - 1) * limit,
        limit=limit,
        sort_by=body.sort_by if body.sort_by in queries.SORTABLE_FIELDS else "created_at",
        ascending=body.sort_order == "asc",
    )

    try:
        total = queries.count_articles(db, filters)
    except SQLAlchemyError as e:
        logger.warning("Count query error: %s", e)
        db.rollback()
        total = 0

    total_pages = math.ceil(total / limit)
    return JSONResponse({
        "success": True,
        "articles": articles,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
        "filters_applied": {
            "article_type": body.article_type,
            "tickers": body.tickers,
            "tags": body.tags,
            "status": body.status,
            "sort_by": body.sort_by,
            "sort_order": body.sort_order,
        },
    })


@router.post("/detail")
def article_detail(body: ArticleDetailRequest, db: Session = Depends(get_db)):
    if not body.article_id and not body.slug:
        raise InvalidInput("Either article_id or slug is required.")

    if body.article_id:
        try:
            article_id = uuid.UUID(body.article_id)
        except ValueError:
            raise NotFound("Article not found.")
        article = queries.get_article(db, article_id=article_id)
    else:
        article = queries.get_article(db, slug=body.slug)

    if not article:
        raise NotFound("Article not found.")
    if article.status != "published":
        raise NotFound("Article not available.", details="This article is not published yet.")

    details = queries.article_to_dict(article, include_content=True)

    if body.increment_views:
        try:
            queries.increment_view_count(db, article)
        except SQLAlchemyError as e:
            logger.warning("Failed to increment view count for %s: %s", article.id, e)
            db.rollback()

    counts = queries.get_engagement_counts(db, article.id)
    details.update({
        "sections": queries.get_sections(db, article.id),
        "sources": queries.get_sources(db, article.id),
        "engagement": {
            "likes": counts.get("like", 0),
            "bookmarks": counts.get("bookmark", 0),
            "shares": counts.get("share", 0),
            "total_views": details["view_count"],
        },
    })
    return JSONResponse({"success": True, "article": details})
