import uuid

import pytest

from app.jobs import tasks
from app.jobs.celery_app import celery_app
from app.settings import settings
from app.db.models.post import Post
from app.errors import SchemaViolation
from tests.conftest import FakeDB, FakeLLM, posts_reply


@pytest.fixture
def job_db(monkeypatch):
    db = FakeDB()
    monkeypatch.setattr(tasks, "get_sessionmaker", lambda: (lambda: db))
    monkeypatch.setattr(settings, "DAILY_POSTS_USER_ID", str(uuid.uuid4()))
    return db


def test_beat_schedule_runs_daily_posts():
    entry = celery_app.conf.beat_schedule["daily-posts"]
    assert entry["task"] == tasks.generate_daily_posts_task.name


def test_task_inserts_posts_and_closes_session(monkeypatch, job_db):
    monkeypatch.setattr(tasks, "get_llm_client", lambda: FakeLLM(posts_reply(10)))

    result = tasks.generate_daily_posts_task()

    assert result == {"ok": True, "inserted": 10, "tokens_used": 42}
    assert len(job_db.rows_of(Post)) == 10
    assert job_db.closed


def test_task_failure_propagates(monkeypatch, job_db):
    monkeypatch.setattr(tasks, "get_llm_client", lambda: FakeLLM(posts_reply(3)))

    with pytest.raises(SchemaViolation):
        tasks.generate_daily_posts_task()
    assert job_db.closed
