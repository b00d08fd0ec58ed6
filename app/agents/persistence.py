# app/agents/persistence.py
"""
Write validated results to the database.

Primary row and dependent batch are two separate commits (the store gives no
multi-table transaction we rely on). The outcome is therefore three-way:
SUCCEEDED, PARTIAL (primary row exists, dependent batch failed) or FAILED
(nothing written). Callers decide how to surface each.
"""
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.agents.schemas import Article, DailyPost
from app.db.models.article import Article as ArticleRow
from app.db.models.article_section import ArticleSection as ArticleSectionRow
from app.db.models.holding import Holding
from app.db.models.portfolio import Portfolio
from app.db.models.post import Post
from app.errors import PersistenceError
from app.log import get_logger

logger = get_logger(__name__)


class PersistStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class PersistOutcome:
    status: PersistStatus
    record: Any = None
    dependents_written: int = 0
    warning: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == PersistStatus.FAILED

    @property
    def partial(self) -> bool:
        return self.status == PersistStatus.PARTIAL

    def raise_for_failure(self, message: str) -> None:
        if self.failed:
            raise PersistenceError(message)


@dataclass
class ResolvedHolding:
    ticker: str
    quantity: float
    average_price: float


def slugify(title: str) -> str:
    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def unique_slug(title: str) -> str:
    base = slugify(title) or "article"
    return f"{base}-{uuid.uuid4().hex[:6]}"


def _insert_primary(db: Session, row: Any, what: str) -> str | None:
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s insert failed: %s", what, e)
        return str(e)
    return None


def _insert_batch(db: Session, rows: list[Any], what: str) -> str | None:
    if not rows:
        return None
    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s insert failed: %s", what, e)
        return str(e)
    return None


def save_article(
    db: Session,
    article: Article,
    *,
    article_type: str,
    tickers: list[str],
    source: str = "api",
) -> PersistOutcome:
    row = ArticleRow(
        title=article.title,
        slug=unique_slug(article.title),
        summary=article.summary or None,
        content=article.content.model_dump(),
        article_type=article_type,
        tickers=list(tickers),
        tags=list(article.tags),
        author="AI Assistant",
        status="published",
        meta={
            **article.metadata,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "source": source,
        },
    )
    err = _insert_primary(db, row, "Article")
    if err:
        return PersistOutcome(PersistStatus.FAILED, error=err)

    sections = [
        ArticleSectionRow(
            article_id=row.id,
            section_title=s.title,
            section_order=i,
            content=s.content,
        )
        for i, s in enumerate(article.content.sections, start=1)
    ]
    err = _insert_batch(db, sections, "Article sections")
    if err:
        return PersistOutcome(
            PersistStatus.PARTIAL,
            record=row,
            warning=f"Article created but sections failed: {err}",
            error=err,
        )
    return PersistOutcome(PersistStatus.SUCCEEDED, record=row, dependents_written=len(sections))


def save_portfolio(
    db: Session,
    *,
    user_id: uuid.UUID,
    name: str,
    description: str | None,
    holdings: Iterable[ResolvedHolding],
) -> PersistOutcome:
    portfolio = Portfolio(user_id=user_id, name=name, description=description, is_public=False)
    err = _insert_primary(db, portfolio, "Portfolio")
    if err:
        return PersistOutcome(PersistStatus.FAILED, error=err)

    rows = [
        Holding(
            portfolio_id=portfolio.id,
            ticker=h.ticker,
            quantity=h.quantity,
            average_price=h.average_price,
        )
        for h in holdings
    ]
    err = _insert_batch(db, rows, "Holdings")
    if err:
        return PersistOutcome(
            PersistStatus.PARTIAL,
            record=portfolio,
            warning=f"Portfolio created but holdings failed: {err}",
            error=err,
        )
    return PersistOutcome(PersistStatus.SUCCEEDED, record=portfolio, dependents_written=len(rows))


def save_posts(db: Session, posts: Iterable[DailyPost], *, user_id: uuid.UUID) -> PersistOutcome:
    """All posts go in one insert; there is no dependent batch, so no PARTIAL."""
    rows = [
        Post(
            user_id=user_id,
            ticker=p.ticker,
            content=p.content,
            post_type=p.post_type,
            is_public=True,
        )
        for p in posts
    ]
    err = _insert_batch(db, rows, "Posts")
    if err:
        return PersistOutcome(PersistStatus.FAILED, error=err)
    return PersistOutcome(PersistStatus.SUCCEEDED, dependents_written=len(rows))


def add_holding(db: Session, *, portfolio_id: uuid.UUID, holding: ResolvedHolding) -> PersistOutcome:
    row = Holding(
        portfolio_id=portfolio_id,
        ticker=holding.ticker,
        quantity=holding.quantity,
        average_price=holding.average_price,
    )
    err = _insert_primary(db, row, "Holding")
    if err:
        return PersistOutcome(PersistStatus.FAILED, error=err)
    return PersistOutcome(PersistStatus.SUCCEEDED, record=row)


def remove_holdings(db: Session, *, portfolio_id: uuid.UUID, ticker: str) -> PersistOutcome:
    try:
        removed = (
            db.query(Holding)
            .filter(Holding.portfolio_id == portfolio_id, Holding.ticker == ticker)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Holding delete failed: %s", e)
        return PersistOutcome(PersistStatus.FAILED, error=str(e))
    return PersistOutcome(PersistStatus.SUCCEEDED, dependents_written=removed)
