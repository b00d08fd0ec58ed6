## Engine + session factory
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.settings import settings
from app.errors import ConfigurationError


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker:
    """One engine per process; sessions are created per request."""
    if not settings.database_url:
        raise ConfigurationError("DATABASE_URL is not configured.")
    engine = create_engine(settings.database_url, pool_pre_ping=True)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
