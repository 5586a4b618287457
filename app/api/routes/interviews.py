from fastapi import APIRouter, Depends

from app.api.deps import get_current_user_id, get_llm_orchestrator, get_orchestrator
from app.schemas.interview import (
    AnswerSubmitRequest,
    InterviewCreateRequest,
    InterviewListItem,
    InterviewResponse,
    MessageResponse,
)
from app.services.interview_orchestrator import InterviewOrchestrator

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("", response_model=InterviewResponse)
def start_interview(
    body: InterviewCreateRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_llm_orchestrator),
):
    return orchestrator.create_interview(user_id, body.role, body.programming_language)


@router.get("/user", response_model=list[InterviewListItem])
def list_user_interviews(
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.list_interviews(user_id)


@router.get("/{interview_id}", response_model=InterviewResponse)
def get_interview(
    interview_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.get_interview(interview_id, user_id)


@router.post("/{interview_id}/answer", response_model=InterviewResponse)
def submit_answer(
    interview_id: int,
    body: AnswerSubmitRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_llm_orchestrator),
):
    return orchestrator.submit_answer(interview_id, user_id, body)


@router.delete("/{interview_id}", response_model=MessageResponse)
def delete_interview(
    interview_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    orchestrator.delete_interview(interview_id, user_id)
    return MessageResponse(msg="Interview removed")
