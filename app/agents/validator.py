# app/agents/validator.py
"""
Per-task shape contracts for parsed model output.

Policy, shared by every task:
- required fields and their JSON kinds are enforced (SchemaViolation otherwise)
- array cardinality is strict: the daily post batch is exactly 10 items, never
  truncated or padded
- free-text length is lenient: post content is clamped to 1000 chars
- free-text-ish enums fall back (post_type -> "UPDATE", blank ticker -> None)
- missing optional fields get their documented defaults (tags -> [], ...)
"""
from typing import Any, Callable, Type

from pydantic import BaseModel, ValidationError

from app.agents.schemas import (
    ARTICLE_TYPES,
    DAILY_POSTS_COUNT,
    Article,
    PortfolioDraft,
    PostBatch,
    SentimentReport,
    TaskType,
)
from app.errors import SchemaViolation

_KINDS = {
    dict: "object",
    list: "array",
    str: "string",
    bool: "boolean",
    int: "number",
    float: "number",
    type(None): "null",
}


def json_kind(value: Any) -> str:
    return _KINDS.get(type(value), type(value).__name__)


def _short(value: Any, limit: int = 200) -> Any:
    """Keep `actual` small and JSON-safe for the error payload."""
    if isinstance(value, (bool, int, float)) or value is None:
        return value
    if isinstance(value, str):
        return value if len(value) <= limit else value[:limit] + "..."
    return f"<{json_kind(value)}>"


def _field_path(loc: tuple) -> str:
    return ".".join(str(p) for p in loc)


def violation_from_error(exc: ValidationError, prefix: str = "") -> SchemaViolation:
    err = exc.errors()[0]
    path = _field_path(err.get("loc", ()))
    if prefix:
        path = f"{prefix}.{path}" if path else prefix
    return SchemaViolation(
        field_path=path,
        expected=err.get("msg", "valid value"),
        actual=_short(err.get("input")),
    )


def _require_object(value: Any) -> dict:
    if not isinstance(value, dict):
        raise SchemaViolation(field_path="", expected="object", actual=json_kind(value))
    return value


def _model(schema: Type[BaseModel], value: Any, prefix: str = "") -> BaseModel:
    try:
        return schema.model_validate(value)
    except ValidationError as e:
        raise violation_from_error(e, prefix) from e


def validate_article(value: Any) -> Article:
    return _model(Article, _require_object(value))


def validate_sentiment(value: Any) -> SentimentReport:
    return _model(SentimentReport, _require_object(value))


def validate_portfolio_draft(value: Any) -> PortfolioDraft:
    draft = _model(PortfolioDraft, _require_object(value))
    if not draft.missing_info and not (draft.name and draft.name.strip()):
        raise SchemaViolation(
            field_path="name",
            expected="non-empty string when missing_info is empty",
            actual=_short(draft.name),
        )
    return draft


def validate_post_batch(value: Any) -> PostBatch:
    # Accept either a bare array or {"posts": [...]}
    items = value.get("posts") if isinstance(value, dict) else value
    if not isinstance(items, list):
        raise SchemaViolation(field_path="posts", expected="array", actual=json_kind(items))
    if len(items) != DAILY_POSTS_COUNT:
        raise SchemaViolation(
            field_path="posts",
            expected=f"exactly {DAILY_POSTS_COUNT} items",
            actual=f"{len(items)} items",
        )
    return _model(PostBatch, {"posts": items})


VALIDATORS: dict[TaskType, Callable[[Any], BaseModel]] = {
    **{t: validate_article for t in ARTICLE_TYPES},
    TaskType.PORTFOLIO_SENTIMENT: validate_sentiment,
    TaskType.PORTFOLIO_EXTRACTION: validate_portfolio_draft,
    TaskType.DAILY_POSTS: validate_post_batch,
}


def validate_result(task_type: TaskType, value: Any) -> BaseModel:
    try:
        validator = VALIDATORS[task_type]
    except KeyError:
        raise ValueError(f"No response schema registered for {task_type.value}") from None
    return validator(value)
