## Request-scoped dependencies
from typing import Iterator

from sqlalchemy.orm import Session

from app.agents.llm.base import LLMFactory
from app.agents.llm.client import get_llm_client
from app.db.session import get_sessionmaker
from app.market.prices import YahooPriceLookup


def get_db() -> Iterator[Session]:
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()


def get_llm_factory() -> LLMFactory:
    # Routes build the client lazily, after input checks pass
    return get_llm_client


def get_price_lookup() -> YahooPriceLookup:
    return YahooPriceLookup()
