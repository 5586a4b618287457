from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

CODING_PROBLEM_MARKER = "[CODING_PROBLEM]"


class InterviewRole(str, Enum):
    SOFTWARE_ENGINEER = "software-engineer"
    FRONTEND_DEVELOPER = "frontend-developer"
    BACKEND_DEVELOPER = "backend-developer"
    DATA_SCIENTIST = "data-scientist"
    PRODUCT_MANAGER = "product-manager"
    DEVOPS_ENGINEER = "devops-engineer"

    @property
    def is_technical(self) -> bool:
        return self is not InterviewRole.PRODUCT_MANAGER

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Questions (tagged union on ``kind``) ---

class QuestionBase(CamelModel):
    question_text: str
    answer_text: Optional[str] = None
    audio_answer: Optional[str] = None
    video_answer: Optional[str] = None
    feedback: Optional[str] = None
    score: Optional[int] = Field(default=None, ge=0, le=10)


class TextQuestion(QuestionBase):
    kind: Literal["text"] = "text"

    @property
    def is_answered(self) -> bool:
        return bool(self.answer_text or self.audio_answer or self.video_answer)

    @property
    def is_evaluated(self) -> bool:
        return self.is_answered and (self.score is not None or self.feedback is not None)

    @property
    def final_score(self) -> Optional[int]:
        return self.score


class CodingQuestion(QuestionBase):
    kind: Literal["coding"] = "coding"
    code_answer: Optional[str] = None
    code_programming_language: Optional[str] = None
    code_feedback: Optional[str] = None
    code_score: Optional[int] = Field(default=None, ge=0, le=10)

    @property
    def is_answered(self) -> bool:
        return bool(self.code_answer)

    @property
    def is_evaluated(self) -> bool:
        return self.is_answered and (self.code_score is not None or self.code_feedback is not None)

    @property
    def final_score(self) -> Optional[int]:
        return self.code_score


Question = Annotated[Union[TextQuestion, CodingQuestion], Field(discriminator="kind")]
QuestionList = TypeAdapter(List[Question])


def new_question(raw_text: str, feedback: Optional[str] = None) -> Union[TextQuestion, CodingQuestion]:
    """Build a question from LLM text, turning a leading coding marker into ``kind``."""
    text = raw_text.strip()
    if text.startswith(CODING_PROBLEM_MARKER):
        return CodingQuestion(question_text=text[len(CODING_PROBLEM_MARKER):].strip(), feedback=feedback)
    return TextQuestion(question_text=text, feedback=feedback)


# --- Requests ---

class InterviewCreateRequest(CamelModel):
    role: InterviewRole
    programming_language: Optional[str] = None


class AnswerSubmitRequest(CamelModel):
    question_index: int
    answer_text: Optional[str] = None
    code_answer: Optional[str] = None
    programming_language: Optional[str] = None
    audio_answer: Optional[str] = None
    video_answer: Optional[str] = None


# --- Responses ---

class InterviewResponse(CamelModel):
    id: int
    user_id: str
    role: InterviewRole
    programming_language: Optional[str] = None
    questions: List[Question]
    overall_feedback: Optional[str] = None
    overall_score: Optional[int] = None
    created_at: datetime
    completed: bool
    version: int


class InterviewListItem(CamelModel):
    id: int
    role: InterviewRole
    programming_language: Optional[str] = None
    question_count: int
    overall_score: Optional[int] = None
    completed: bool
    created_at: datetime


class MessageResponse(BaseModel):
    msg: str
