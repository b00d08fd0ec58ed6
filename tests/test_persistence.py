import uuid

import pytest

from app.agents.persistence import (
    PersistStatus,
    ResolvedHolding,
    save_article,
    save_portfolio,
    save_posts,
    slugify,
    unique_slug,
)
from app.agents.schemas import Article, DailyPost
from app.db.models.article import Article as ArticleRow
from app.db.models.article_section import ArticleSection as ArticleSectionRow
from app.db.models.holding import Holding
from app.db.models.post import Post
from app.errors import PersistenceError
from tests.conftest import FakeDB


def article():
    return Article.model_validate({
        "title": "AI Chips: What's Next?",
        "summary": "A look ahead.",
        "content": {"sections": [
            {"title": "One", "content": "a"},
            {"title": "Two", "content": "b"},
        ]},
        "metadata": {"ai_model": "m"},
    })


def test_slugify():
    assert slugify("AI Chips: What's Next?") == "ai-chips-whats-next"
    assert slugify("  Up -- and   down ") == "up-and-down"


def test_unique_slug_keeps_base():
    a, b = unique_slug("Hello World"), unique_slug("Hello World")
    assert a.startswith("hello-world-")
    assert a != b


def test_save_article_writes_row_then_ordered_sections():
    db = FakeDB()
    outcome = save_article(db, article(), article_type="MARKET_OVERVIEW", tickers=[])

    assert outcome.status == PersistStatus.SUCCEEDED
    row = db.rows_of(ArticleRow)[0]
    assert row.status == "published"
    assert row.author == "AI Assistant"
    assert row.meta["ai_model"] == "m"
    assert row.meta["source"] == "api"
    sections = db.rows_of(ArticleSectionRow)
    assert [(s.section_order, s.section_title) for s in sections] == [(1, "One"), (2, "Two")]
    assert all(s.article_id == row.id for s in sections)


def test_sections_failure_is_partial_success():
    db = FakeDB(fail_on_commit=2)
    outcome = save_article(db, article(), article_type="MARKET_OVERVIEW", tickers=[])

    assert outcome.partial
    assert outcome.record is not None
    assert outcome.warning.startswith("Article created but sections failed:")
    assert db.rollbacks == 1
    outcome.raise_for_failure("unused")


def test_primary_failure_writes_nothing():
    db = FakeDB(fail_on_commit=1)
    outcome = save_article(db, article(), article_type="MARKET_OVERVIEW", tickers=[])

    assert outcome.failed
    assert db.committed == []
    with pytest.raises(PersistenceError):
        outcome.raise_for_failure("Failed to save article to database.")


def test_save_portfolio_partial():
    db = FakeDB(fail_on_commit=2)
    outcome = save_portfolio(
        db,
        user_id=uuid.uuid4(),
        name="Tech",
        description=None,
        holdings=[ResolvedHolding("AAPL", 2, 200.0)],
    )
    assert outcome.partial
    assert outcome.warning.startswith("Portfolio created but holdings failed:")
    assert db.rows_of(Holding) == []


def test_save_portfolio_without_holdings_succeeds():
    db = FakeDB()
    outcome = save_portfolio(db, user_id=uuid.uuid4(), name="Empty", description="d", holdings=[])
    assert outcome.status == PersistStatus.SUCCEEDED
    assert outcome.record.is_public is False


def test_save_posts_is_one_insert():
    db = FakeDB()
    owner = uuid.uuid4()
    posts = [DailyPost(ticker="AAPL", content=f"p{i}") for i in range(10)]
    outcome = save_posts(db, posts, user_id=owner)

    assert outcome.dependents_written == 10
    assert db.commits == 1
    rows = db.rows_of(Post)
    assert all(r.user_id == owner and r.is_public for r in rows)


def test_save_posts_failure():
    db = FakeDB(fail_on_commit=1)
    outcome = save_posts(db, [DailyPost(content="x")], user_id=uuid.uuid4())
    assert outcome.failed
    assert not outcome.partial
