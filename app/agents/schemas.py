## Pydantic Schemas for Structured Output
from datetime import datetime
from enum import Enum
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ARTICLE_TITLE_MAX = 300
POST_CONTENT_MAX = 1000
DAILY_POSTS_COUNT = 10
POST_TYPES = ("UPDATE", "NEWS", "ANALYSIS", "ALERT")
DEFAULT_POST_TYPE = "UPDATE"


class TaskType(str, Enum):
    TICKER_ANALYSIS = "TICKER_ANALYSIS"
    NEWS_SUMMARY = "NEWS_SUMMARY"
    MARKET_OVERVIEW = "MARKET_OVERVIEW"
    PORTFOLIO_SENTIMENT = "PORTFOLIO_SENTIMENT"
    TICKER_CHAT = "TICKER_CHAT"
    DAILY_POSTS = "DAILY_POSTS"
    PORTFOLIO_EXTRACTION = "PORTFOLIO_EXTRACTION"


ARTICLE_TYPES = (TaskType.TICKER_ANALYSIS, TaskType.NEWS_SUMMARY, TaskType.MARKET_OVERVIEW)


class GenerationTask(BaseModel):
    task_type: TaskType
    parameters: dict[str, Any] = Field(default_factory=dict)


class ModelMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class ModelReply(BaseModel):
    text: str
    usage: TokenUsage | None = None


# -------------------------
# Articles
# -------------------------
class ArticleSection(BaseModel):
    title: str = Field(min_length=1)
    content: str


class ArticleContent(BaseModel):
    sections: List[ArticleSection] = Field(min_length=1)


class Article(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    summary: str | None = None
    content: ArticleContent
    tags: List[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def _clamp_title(cls, v: str) -> str:
        return v[:ARTICLE_TITLE_MAX]

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_or_empty(cls, v):
        return [] if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, v):
        return {} if v is None else v


# -------------------------
# Portfolio sentiment
# -------------------------
class Risk(BaseModel):
    title: str
    explanation: str


class Recommendation(BaseModel):
    title: str
    action: str


class SentimentReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sentiment: Literal["bullish", "neutral", "bearish"]
    justification: str
    risks: List[Risk] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# -------------------------
# Portfolio extraction
# -------------------------
class HoldingDraft(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticker: str = Field(min_length=1)
    quantity: float | None = None
    allocation_percentage: float | None = None
    average_price: float | None = None

    @field_validator("ticker", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class PortfolioDraft(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = None
    total_investment: float | None = None
    holdings: List[HoldingDraft] = Field(default_factory=list)
    missing_info: List[str] = Field(default_factory=list)

    @field_validator("holdings", "missing_info", mode="before")
    @classmethod
    def _list_or_empty(cls, v):
        return [] if v is None else v


# -------------------------
# Daily posts
# -------------------------
class DailyPost(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticker: str | None = None
    content: str
    post_type: str = DEFAULT_POST_TYPE

    @field_validator("ticker", mode="before")
    @classmethod
    def _ticker(cls, v):
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip().upper()

    @field_validator("content")
    @classmethod
    def _clamp(cls, v: str) -> str:
        return v[:POST_CONTENT_MAX]

    @field_validator("post_type", mode="before")
    @classmethod
    def _post_type(cls, v):
        if isinstance(v, str) and v.strip().upper() in POST_TYPES:
            return v.strip().upper()
        return DEFAULT_POST_TYPE


class PostBatch(BaseModel):
    posts: List[DailyPost]


# -------------------------
# Ticker chat
# -------------------------
class ChatReply(BaseModel):
    response: str
    ticker: str
    timestamp: datetime
    is_truncated: bool
