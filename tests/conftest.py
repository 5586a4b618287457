# tests/conftest.py
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-not-a-real-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.locks import InterviewLockRegistry
from app.db.base import Base
from app.repositories.interview_repository import InterviewRepository
from app.repositories.user_repository import UserRepository
from app.services.interview_orchestrator import InterviewOrchestrator
from app.services.llm_client import RetryingLLMClient

# Prompt kind -> text that only that prompt contains
PROMPT_MARKERS = [
    ("first", "Start the interview by asking the first question"),
    ("overall", "Overall Feedback: [your feedback]"),
    ("code_review", "You are an expert programmer."),
    ("concept_eval", "conceptual understanding of the following coding problem"),
    ("recording_eval", "recording content is not available"),
    ("text_eval", "Please evaluate this answer"),
    ("turn", "Based on the above history"),
]

DEFAULT_RESPONSES = {
    "first": "Feedback: Welcome to the interview!\nScore: N/A\nNext Question: Tell me about yourself.",
    "overall": "Overall Feedback: Solid performance overall.",
    "code_review": "Feedback: Clean, readable code.\nScore: 8\nAreas for Improvement: Add tests.",
    "concept_eval": "Feedback: Good grasp of the problem.\nScore: 7\nAreas for Improvement: Edge cases.",
    "recording_eval": "Feedback: A strong answer would cover trade-offs.\nScore: 5\nAreas for Improvement: Detail.",
    "text_eval": "Feedback: Clear and well structured.\nScore: 6\nAreas for Improvement: Examples.",
}


class FakeLLM:
    """
    Stands in for the chat model. Answers by prompt kind; ``scripts[kind]``
    queues explicit responses (strings or exceptions to raise) ahead of the
    defaults.
    """

    def __init__(self):
        self.calls = []
        self.scripts = {}
        self.turns = 0

    @staticmethod
    def kind_of(prompt):
        for kind, marker in PROMPT_MARKERS:
            if marker in prompt:
                return kind
        return "unknown"

    def script(self, kind, *items):
        self.scripts.setdefault(kind, []).extend(items)

    def kinds(self):
        return [kind for kind, _ in self.calls]

    def generate_content(self, prompt, timeout=None):
        kind = self.kind_of(prompt)
        self.calls.append((kind, prompt))
        queue = self.scripts.get(kind)
        if queue:
            item = queue.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if kind == "turn":
            self.turns += 1
            return f"Feedback: Noted.\nScore: 6\nNext Question: Follow-up question {self.turns}?"
        return DEFAULT_RESPONSES.get(kind, "")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def sleeps():
    """Backoff delays requested by the retrying client, instead of real sleeping."""
    return []


@pytest.fixture
def llm_client(fake_llm, sleeps):
    return RetryingLLMClient(fake_llm, retries=5, initial_delay=2.0, sleep=sleeps.append)


@pytest.fixture
def locks():
    return InterviewLockRegistry()


@pytest.fixture
def orchestrator(db_session, llm_client, locks):
    return InterviewOrchestrator(
        interviews=InterviewRepository(db_session),
        users=UserRepository(db_session),
        llm=llm_client,
        locks=locks,
        lock_timeout=1.0,
    )


@pytest.fixture
def client(session_factory, llm_client):
    from app.api.deps import get_llm_client
    from app.db.session import get_db
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_client] = lambda: llm_client
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
