import json
import os
import uuid
from typing import Any

os.environ.setdefault("OPENROUTER_API_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "openrouter")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.agents.llm.base import LLMClient
from app.agents.schemas import ModelReply, TokenUsage
from app.deps import get_db, get_llm_factory, get_price_lookup
from app.main import app


class FakeLLM(LLMClient):
    """Returns canned replies in order; an Exception entry is raised instead."""

    def __init__(self, *replies: Any, model: str = "test-model", **kwargs: Any):
        super().__init__(model=model, **kwargs)
        self.replies = list(replies)
        self.payloads: list[dict[str, Any]] = []

    def _send(self, payload: dict[str, Any]) -> ModelReply:
        self.payloads.append(payload)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ModelReply):
            return reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return ModelReply(text=reply, usage=TokenUsage(total_tokens=42))

    @property
    def calls(self) -> int:
        return len(self.payloads)


class FakeQuery:
    def __init__(self, db: "FakeDB"):
        self.db = db

    def filter(self, *args: Any) -> "FakeQuery":
        return self

    def delete(self, synchronize_session: Any = None) -> int:
        return self.db.delete_count


class FakeDB:
    """Session stand-in; `fail_on_commit=N` makes the Nth commit raise."""

    def __init__(self, fail_on_commit: int | None = None, delete_count: int = 0):
        self.fail_on_commit = fail_on_commit
        self.delete_count = delete_count
        self.pending: list[Any] = []
        self.committed: list[Any] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def add(self, row: Any) -> None:
        self.pending.append(row)

    def add_all(self, rows: list[Any]) -> None:
        self.pending.extend(rows)

    def commit(self) -> None:
        self.commits += 1
        if self.fail_on_commit == self.commits:
            raise SQLAlchemyError("simulated database failure")
        self.committed.extend(self.pending)
        self.pending = []

    def refresh(self, row: Any) -> None:
        if getattr(row, "id", None) is None:
            row.id = uuid.uuid4()

    def rollback(self) -> None:
        self.rollbacks += 1
        self.pending = []

    def close(self) -> None:
        self.closed = True

    def query(self, *args: Any) -> FakeQuery:
        return FakeQuery(self)

    def rows_of(self, model: type) -> list[Any]:
        return [r for r in self.committed if isinstance(r, model)]


class FakePrices:
    def __init__(self, **prices: float):
        self.prices = prices
        self.asked: list[str] = []

    def current_price(self, ticker: str) -> float | None:
        self.asked.append(ticker)
        return self.prices.get(ticker)


def posts_reply(n: int = 10) -> list[dict[str, Any]]:
    return [
        {"ticker": "AAPL", "content": f"Apple update number {i}.", "post_type": "NEWS"}
        for i in range(n)
    ]


@pytest.fixture
def db() -> FakeDB:
    return FakeDB()


@pytest.fixture
def prices() -> FakePrices:
    return FakePrices(AAPL=200.0, MSFT=400.0)


@pytest.fixture
def llm_box() -> dict[str, FakeLLM]:
    """Holder so a test can set the LLM after the client is built."""
    return {"llm": FakeLLM()}


@pytest.fixture
def client(db, prices, llm_box):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_llm_factory] = lambda: (lambda: llm_box["llm"])
    app.dependency_overrides[get_price_lookup] = lambda: prices
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
