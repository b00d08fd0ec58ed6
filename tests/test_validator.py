import pytest

from app.agents.schemas import ARTICLE_TITLE_MAX, DEFAULT_POST_TYPE, POST_CONTENT_MAX, TaskType
from app.agents.validator import (
    validate_article,
    validate_portfolio_draft,
    validate_post_batch,
    validate_result,
    validate_sentiment,
)
from app.errors import SchemaViolation
from tests.conftest import posts_reply


def article(**overrides):
    base = {
        "title": "Apple Q3",
        "summary": "Strong quarter.",
        "content": {"sections": [{"title": "Overview", "content": "Revenue grew."}]},
    }
    base.update(overrides)
    return base


def test_article_defaults_for_missing_optionals():
    result = validate_article(article(tags=None))
    assert result.tags == []
    assert result.metadata == {}


def test_article_without_sections_names_the_field():
    with pytest.raises(SchemaViolation) as exc:
        validate_article(article(content={"sections": []}))
    assert exc.value.field_path == "content.sections"
    assert exc.value.stage == "validate"


def test_article_missing_title():
    data = article()
    del data["title"]
    with pytest.raises(SchemaViolation) as exc:
        validate_article(data)
    assert exc.value.field_path == "title"


def test_long_title_is_clamped_to_limit():
    result = validate_article(article(title="T" * (ARTICLE_TITLE_MAX + 1)))
    assert result.title == "T" * ARTICLE_TITLE_MAX


def test_non_object_root_is_rejected():
    with pytest.raises(SchemaViolation) as exc:
        validate_article([article()])
    assert exc.value.field_path == ""
    assert exc.value.actual == "array"


def test_batch_of_exactly_ten_passes():
    batch = validate_post_batch(posts_reply(10))
    assert len(batch.posts) == 10


@pytest.mark.parametrize("n", [0, 9, 11])
def test_batch_of_wrong_size_is_rejected(n):
    with pytest.raises(SchemaViolation) as exc:
        validate_post_batch(posts_reply(n))
    assert exc.value.field_path == "posts"
    assert exc.value.actual == f"{n} items"


def test_batch_accepts_wrapped_object():
    assert len(validate_post_batch({"posts": posts_reply(10)}).posts) == 10


def test_long_post_content_is_clamped_to_limit():
    items = posts_reply(10)
    items[3]["content"] = "x" * 2500
    batch = validate_post_batch(items)
    assert len(batch.posts[3].content) == POST_CONTENT_MAX


def test_post_fallbacks():
    items = posts_reply(10)
    items[0].update(ticker="  ", post_type="RUMOUR")
    items[1].update(ticker="tsla", post_type="alert")
    batch = validate_post_batch(items)
    assert batch.posts[0].ticker is None
    assert batch.posts[0].post_type == DEFAULT_POST_TYPE
    assert batch.posts[1].ticker == "TSLA"
    assert batch.posts[1].post_type == "ALERT"


def test_post_without_content_is_rejected():
    items = posts_reply(10)
    del items[7]["content"]
    with pytest.raises(SchemaViolation) as exc:
        validate_post_batch(items)
    assert exc.value.field_path == "posts.7.content"


def test_sentiment_is_lowercased():
    report = validate_sentiment({"sentiment": "Bullish", "justification": "Tech heavy."})
    assert report.sentiment == "bullish"
    assert report.risks == []


def test_unknown_sentiment_is_rejected():
    with pytest.raises(SchemaViolation) as exc:
        validate_sentiment({"sentiment": "euphoric", "justification": "x"})
    assert exc.value.field_path == "sentiment"


def test_portfolio_draft_needs_name_unless_info_missing():
    with pytest.raises(SchemaViolation) as exc:
        validate_portfolio_draft({"holdings": [{"ticker": "aapl", "quantity": 1}]})
    assert exc.value.field_path == "name"

    draft = validate_portfolio_draft({"missing_info": ["total investment"]})
    assert draft.missing_info == ["total investment"]


def test_holding_ticker_is_uppercased():
    draft = validate_portfolio_draft({"name": "Tech", "holdings": [{"ticker": " msft ", "quantity": 2}]})
    assert draft.holdings[0].ticker == "MSFT"


def test_validate_result_dispatch():
    assert validate_result(TaskType.MARKET_OVERVIEW, article()).title == "Apple Q3"
    with pytest.raises(ValueError):
        validate_result(TaskType.TICKER_CHAT, {})
