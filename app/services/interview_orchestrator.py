import logging
import math
import time
from typing import Callable, List, Optional, Sequence

from app.core.exceptions import ConflictError, InvalidIndexError, NotFoundError, UnauthorizedError, ValidationError
from app.core.locks import InterviewLockRegistry, interview_locks
from app.models.interview import Interview
from app.repositories.interview_repository import InterviewRepository
from app.repositories.user_repository import UserRepository
from app.schemas.interview import (
    AnswerSubmitRequest,
    CodingQuestion,
    InterviewListItem,
    InterviewResponse,
    InterviewRole,
    Question,
    TextQuestion,
    new_question,
)
from app.services import prompt_builder
from app.services.llm_client import RetryingLLMClient
from app.services.response_parser import DEFAULT_NEXT_QUESTION, WELCOME_FEEDBACK, parse, parse_overall_feedback

logger = logging.getLogger(__name__)

NEXT_QUESTION_FAILURE_FEEDBACK = (
    "Failed to generate feedback or next question due to an issue with the AI service. "
    "Please continue with the next question or try again later."
)
BEST_EFFORT_NOTE = "[Best-effort evaluation: {medium} content was not analysed] "


def compute_overall_score(questions: Sequence[Question]) -> int:
    """
    Mean of the per-question scores, rounded half up.

    Coding questions count their code score, text questions their score. An
    unset score counts as 0 and stays in the denominator.
    """
    if not questions:
        return 0
    total = sum(q.final_score or 0 for q in questions)
    return math.floor(total / len(questions) + 0.5)


def is_complete(questions: Sequence[Question], max_questions: int) -> bool:
    return len(questions) >= max_questions and questions[-1].is_evaluated


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class InterviewOrchestrator:
    """
    Drives an interview from its first question to completion.

    Every answer submission for one interview runs under that interview's
    lock: state is read, the answer is evaluated by the LLM, and the result
    is written before the next submission can look at it. Evaluation results
    are persisted only after every evaluation call has succeeded.
    """

    def __init__(
        self,
        interviews: InterviewRepository,
        users: UserRepository,
        llm: Optional[RetryingLLMClient] = None,
        locks: InterviewLockRegistry = interview_locks,
        max_questions: int = 5,
        deadline_seconds: Optional[float] = None,
        lock_timeout: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interviews = interviews
        self.users = users
        self.llm = llm
        self.locks = locks
        self.max_questions = max_questions
        self.deadline_seconds = deadline_seconds
        self.lock_timeout = lock_timeout
        self.clock = clock

    # --- queries ---

    def get_interview(self, interview_id: int, user_id: str) -> InterviewResponse:
        interview = self._get_owned(interview_id, user_id)
        return self.to_response(interview)

    def list_interviews(self, user_id: str) -> List[InterviewListItem]:
        items = []
        for interview in self.interviews.list_by_user(user_id):
            questions = self.interviews.parse_questions(interview)
            items.append(
                InterviewListItem(
                    id=interview.id,
                    role=InterviewRole(interview.role),
                    programming_language=interview.programming_language,
                    question_count=len(questions),
                    overall_score=interview.overall_score,
                    completed=is_complete(questions, self.max_questions),
                    created_at=interview.created_at,
                )
            )
        return items

    # --- commands ---

    def create_interview(
        self,
        user_id: str,
        role: InterviewRole,
        programming_language: Optional[str] = None,
    ) -> InterviewResponse:
        role = InterviewRole(role)
        programming_language = _clean(programming_language)
        if role.is_technical and not programming_language:
            raise ValidationError(f"A programming language is required for the {role.label} role")

        deadline = self._deadline()
        prompt = prompt_builder.build_prompt(role, [], programming_language, self.max_questions)
        parsed = parse(self.llm.generate(prompt, deadline=deadline), default_feedback=WELCOME_FEEDBACK)
        first = new_question(parsed.next_question_text, feedback=parsed.feedback)

        user = self.users.get_or_create(user_id)
        interview = self.interviews.create(user, role.value, [first], programming_language)
        logger.info("Interview %s created for role %s (first question kind: %s)", interview.id, role.value, first.kind)
        return self.to_response(interview)

    def submit_answer(self, interview_id: int, user_id: str, payload: AnswerSubmitRequest) -> InterviewResponse:
        # Unknown or foreign ids never reach the lock registry
        self._get_owned(interview_id, user_id)
        with self.locks.hold(interview_id, timeout=self.lock_timeout):
            interview = self._get_owned(interview_id, user_id, fresh=True)
            questions = self.interviews.parse_questions(interview)

            index = payload.question_index
            if index != len(questions) - 1:
                raise InvalidIndexError(
                    "Invalid question index",
                    details={"question_index": index, "answerable_index": len(questions) - 1},
                )

            question = questions[index]
            if question.is_answered:
                raise ConflictError("This question has already been answered")

            self._record_answer(question, payload)

            deadline = self._deadline()
            role = InterviewRole(interview.role)
            self._evaluate(role, question, deadline)

            # The answered question is always the last one here, so the
            # overall result is refreshed on every submission until the end.
            interview.overall_score = compute_overall_score(questions)
            overall_prompt = prompt_builder.build_overall_feedback_prompt(
                role, questions, interview.overall_score, interview.programming_language
            )
            interview.overall_feedback = parse_overall_feedback(self.llm.generate(overall_prompt, deadline=deadline))

            self.interviews.save(interview, questions)

            if len(questions) < self.max_questions:
                questions.append(self._next_question(role, questions, interview.programming_language, deadline))
                self.interviews.save(interview, questions)
            else:
                logger.info("Interview %s completed with overall score %s", interview.id, interview.overall_score)

            return self.to_response(interview, questions)

    def delete_interview(self, interview_id: int, user_id: str):
        interview = self._get_owned(interview_id, user_id)
        self.interviews.delete(interview)
        logger.info("Interview %s deleted", interview_id)

    # --- helpers ---

    def _deadline(self) -> Optional[float]:
        if self.deadline_seconds is None:
            return None
        return self.clock() + self.deadline_seconds

    def _get_owned(self, interview_id: int, user_id: str, fresh: bool = False) -> Interview:
        interview = self.interviews.get_by_id(interview_id, fresh=fresh)
        if not interview:
            raise NotFoundError("Interview not found")
        if interview.user_id != user_id:
            raise UnauthorizedError("Not authorized")
        return interview

    @staticmethod
    def _record_answer(question: Question, payload: AnswerSubmitRequest):
        answer_text = _clean(payload.answer_text)
        if isinstance(question, CodingQuestion):
            language = _clean(payload.programming_language)
            if not _clean(payload.code_answer) or not language:
                raise ValidationError("Code answer and programming language are required for coding questions")
            question.code_answer = payload.code_answer
            question.code_programming_language = language
            question.answer_text = answer_text
            return

        audio_answer = _clean(payload.audio_answer)
        video_answer = _clean(payload.video_answer)
        if not (answer_text or audio_answer or video_answer):
            raise ValidationError("Answer text, video answer, or audio answer is required for non-coding questions")
        question.answer_text = answer_text
        question.audio_answer = audio_answer
        question.video_answer = video_answer

    def _evaluate(self, role: InterviewRole, question: Question, deadline: Optional[float]):
        if isinstance(question, CodingQuestion):
            concept = parse(
                self.llm.generate(prompt_builder.build_coding_concept_prompt(role, question), deadline=deadline),
                expect_next_question=False,
            )
            review = parse(
                self.llm.generate(prompt_builder.build_code_review_prompt(question), deadline=deadline),
                expect_next_question=False,
            )
            question.feedback, question.score = concept.feedback, concept.score
            question.code_feedback, question.code_score = review.feedback, review.score
            return

        if question.answer_text:
            prompt = prompt_builder.build_text_evaluation_prompt(role, question, question.answer_text)
            note = ""
        else:
            medium = "audio" if question.audio_answer else "video"
            prompt = prompt_builder.build_recording_evaluation_prompt(role, question, medium)
            note = BEST_EFFORT_NOTE.format(medium=medium)

        result = parse(self.llm.generate(prompt, deadline=deadline), expect_next_question=False)
        question.feedback = note + result.feedback
        question.score = result.score

    def _next_question(
        self,
        role: InterviewRole,
        questions: List[Question],
        programming_language: Optional[str],
        deadline: Optional[float],
    ) -> Question:
        prompt = prompt_builder.build_prompt(role, questions, programming_language, self.max_questions)
        try:
            parsed = parse(self.llm.generate(prompt, deadline=deadline))
        except Exception:
            # The answer is already saved; a missing follow-up must not fail the request.
            logger.error("Error generating next question after retries", exc_info=True)
            return TextQuestion(question_text=DEFAULT_NEXT_QUESTION, feedback=NEXT_QUESTION_FAILURE_FEEDBACK)
        return new_question(parsed.next_question_text)

    def to_response(self, interview: Interview, questions: Optional[List[Question]] = None) -> InterviewResponse:
        if questions is None:
            questions = self.interviews.parse_questions(interview)
        return InterviewResponse(
            id=interview.id,
            user_id=interview.user_id,
            role=InterviewRole(interview.role),
            programming_language=interview.programming_language,
            questions=questions,
            overall_feedback=interview.overall_feedback,
            overall_score=interview.overall_score,
            created_at=interview.created_at,
            completed=is_complete(questions, self.max_questions),
            version=interview.version,
        )
