# app/db/queries.py
"""Read-side queries used by the handlers."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Query, Session

from app.db.models.article import Article
from app.db.models.article_engagement import ArticleEngagement
from app.db.models.article_section import ArticleSection
from app.db.models.article_source import ArticleSource
from app.db.models.holding import Holding
from app.db.models.session_token import SessionToken

SORTABLE_FIELDS = {
    "created_at": Article.created_at,
    "updated_at": Article.updated_at,
    "title": Article.title,
    "view_count": Article.view_count,
}


@dataclass
class ArticleFilters:
    status: str = "published"
    article_type: str | None = None
    tickers: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


def _iso(v: datetime | None) -> str | None:
    return v.isoformat() if v else None


def article_to_dict(a: Article, *, include_content: bool = False) -> dict[str, Any]:
    out = {
        "id": str(a.id) if a.id else None,
        "title": a.title,
        "slug": a.slug,
        "summary": a.summary,
        "article_type": a.article_type,
        "tickers": list(a.tickers or []),
        "tags": list(a.tags or []),
        "status": a.status,
        "view_count": a.view_count or 0,
        "is_premium": bool(a.is_premium),
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
        "metadata": a.meta or {},
    }
    if include_content:
        out["content"] = a.content
        out["author"] = a.author
    return out


def _filtered(query: Query, filters: ArticleFilters) -> Query:
    query = query.filter(Article.status == filters.status)
    if filters.article_type:
        query = query.filter(Article.article_type == filters.article_type)
    if filters.tickers:
        query = query.filter(Article.tickers.overlap(filters.tickers))
    if filters.tags:
        query = query.filter(Article.tags.overlap(filters.tags))
    return query


def list_articles(
    db: Session,
    filters: ArticleFilters,
    *,
    offset: int,
    limit: int,
    sort_by: str = "created_at",
    ascending: bool = False,
) -> list[dict[str, Any]]:
    column = SORTABLE_FIELDS.get(sort_by, Article.created_at)
    rows = (
        _filtered(db.query(Article), filters)
        .order_by(asc(column) if ascending else desc(column))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [article_to_dict(a) for a in rows]


def count_articles(db: Session, filters: ArticleFilters) -> int:
    return _filtered(db.query(func.count(Article.id)), filters).scalar() or 0


def get_article(db: Session, *, article_id: uuid.UUID | None = None, slug: str | None = None) -> Article | None:
    query = db.query(Article)
    if article_id is not None:
        return query.filter(Article.id == article_id).first()
    return query.filter(Article.slug == slug).first()


def increment_view_count(db: Session, article: Article) -> None:
    db.query(Article).filter(Article.id == article.id).update(
        {Article.view_count: Article.view_count + 1}, synchronize_session=False
    )
    db.commit()


def get_sections(db: Session, article_id: uuid.UUID) -> list[dict[str, Any]]:
    rows = (
        db.query(ArticleSection)
        .filter(ArticleSection.article_id == article_id)
        .order_by(ArticleSection.section_order.asc())
        .all()
    )
    return [
        {
            "id": str(s.id),
            "section_title": s.section_title,
            "section_order": s.section_order,
            "content": s.content,
            "created_at": _iso(s.created_at),
        }
        for s in rows
    ]


def get_sources(db: Session, article_id: uuid.UUID) -> list[dict[str, Any]]:
    rows = (
        db.query(ArticleSource)
        .filter(ArticleSource.article_id == article_id)
        .order_by(ArticleSource.created_at.desc())
        .all()
    )
    return [
        {
            "id": str(s.id),
            "source_type": s.source_type,
            "source_url": s.source_url,
            "source_title": s.source_title,
            "source_date": _iso(s.source_date),
            "relevance_score": s.relevance_score,
            "metadata": s.meta or {},
            "created_at": _iso(s.created_at),
        }
        for s in rows
    ]


def get_engagement_counts(db: Session, article_id: uuid.UUID) -> dict[str, int]:
    rows = (
        db.query(ArticleEngagement.engagement_type, func.count(ArticleEngagement.id))
        .filter(
            ArticleEngagement.article_id == article_id,
            ArticleEngagement.engagement_type.in_(("like", "bookmark", "share")),
        )
        .group_by(ArticleEngagement.engagement_type)
        .all()
    )
    return {engagement_type: int(count) for engagement_type, count in rows}


def list_holdings(db: Session, portfolio_id: uuid.UUID) -> list[dict[str, Any]]:
    rows = db.query(Holding).filter(Holding.portfolio_id == portfolio_id).all()
    return [
        {
            "id": str(h.id),
            "portfolio_id": str(h.portfolio_id),
            "ticker": h.ticker,
            "quantity": h.quantity,
            "average_price": h.average_price,
            "total_invested": h.total_invested,
            "notes": h.notes,
        }
        for h in rows
    ]


def user_id_for_token(db: Session, token_hash: str) -> uuid.UUID | None:
    tok = (
        db.query(SessionToken)
        .filter(SessionToken.token_hash == token_hash, SessionToken.revoked_at.is_(None))
        .first()
    )
    if not tok or tok.expires_at <= datetime.now(timezone.utc):
        return None
    return tok.user_id
