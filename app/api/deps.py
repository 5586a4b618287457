from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.locks import interview_locks
from app.db.session import get_db
from app.repositories.interview_repository import InterviewRepository
from app.repositories.user_repository import UserRepository
from app.services.interview_orchestrator import InterviewOrchestrator
from app.services.llm_client import RetryingLLMClient
from app.services.openai_service import OpenAIService


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the authenticating gateway in front of this service."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("No user identity, authorization denied")
    return x_user_id.strip()


def get_llm_client() -> RetryingLLMClient:
    return RetryingLLMClient(
        OpenAIService(),
        retries=settings.llm_retries,
        initial_delay=settings.llm_initial_delay_seconds,
    )


def _orchestrator(db: Session, llm: RetryingLLMClient | None) -> InterviewOrchestrator:
    return InterviewOrchestrator(
        interviews=InterviewRepository(db),
        users=UserRepository(db),
        llm=llm,
        locks=interview_locks,
        max_questions=settings.max_questions,
        deadline_seconds=settings.llm_deadline_seconds,
        lock_timeout=settings.answer_lock_timeout_seconds,
    )


def get_orchestrator(db: Session = Depends(get_db)) -> InterviewOrchestrator:
    """Orchestrator for reads and deletes; never touches the model."""
    return _orchestrator(db, None)


def get_llm_orchestrator(
    db: Session = Depends(get_db),
    llm: RetryingLLMClient = Depends(get_llm_client),
) -> InterviewOrchestrator:
    return _orchestrator(db, llm)
