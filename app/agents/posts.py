# app/agents/posts.py
import uuid

from sqlalchemy.orm import Session

from app.settings import settings
from app.agents.llm.base import LLMFactory
from app.agents.persistence import PersistOutcome, save_posts
from app.agents.pipeline import StructuredRun, run_structured
from app.agents.schemas import DAILY_POSTS_COUNT, GenerationTask, TaskType
from app.errors import ConfigurationError
from app.log import get_logger

logger = get_logger(__name__)


def daily_posts_owner() -> uuid.UUID:
    raw = settings.DAILY_POSTS_USER_ID
    if not raw:
        raise ConfigurationError("DAILY_POSTS_USER_ID is not configured.")
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise ConfigurationError("DAILY_POSTS_USER_ID is not a valid UUID.") from e


def publish_daily_posts(db: Session, llm_factory: LLMFactory) -> tuple[StructuredRun, PersistOutcome]:
    """Generate exactly ten posts and insert them for the configured owner."""
    owner = daily_posts_owner()
    task = GenerationTask(task_type=TaskType.DAILY_POSTS, parameters={"count": DAILY_POSTS_COUNT})

    run = run_structured(llm_factory(), task)
    outcome = save_posts(db, run.result.posts, user_id=owner)
    outcome.raise_for_failure("Database insert failed")

    logger.info("Inserted %d daily posts", outcome.dependents_written)
    return run, outcome
