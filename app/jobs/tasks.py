# app/jobs/tasks.py
"""
Scheduled generation jobs.

Run a worker with beat:
    celery -A app.jobs.celery_app worker --beat --loglevel=info
"""
from typing import Any, Dict

from app.jobs.celery_app import celery_app
from app.db.session import get_sessionmaker
from app.agents.llm.client import get_llm_client
from app.agents.posts import publish_daily_posts
from app.log import get_logger

logger = get_logger(__name__)


@celery_app.task(name="app.jobs.tasks.generate_daily_posts_task")
def generate_daily_posts_task() -> Dict[str, Any]:
    db = get_sessionmaker()()
    try:
        run, outcome = publish_daily_posts(db, get_llm_client)
    except Exception:
        logger.exception("Daily posts job failed")
        raise
    finally:
        db.close()

    return {"ok": True, "inserted": outcome.dependents_written, "tokens_used": run.tokens_used}
