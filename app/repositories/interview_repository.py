from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.interview import Interview
from app.models.user import User
from app.schemas.interview import Question, QuestionList


class InterviewRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user: User,
        role: str,
        questions: List[Question],
        programming_language: Optional[str] = None,
    ) -> Interview:
        interview = Interview(role=role, programming_language=programming_language)
        self.set_questions(interview, questions)
        user.interviews.append(interview)
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)
        return interview

    def get_by_id(self, interview_id: int, fresh: bool = False) -> Interview | None:
        # fresh re-selects the row even when the session already holds it
        return self.db.get(Interview, interview_id, populate_existing=fresh)

    def list_by_user(self, user_id: str) -> List[Interview]:
        stmt = (
            select(Interview)
            .where(Interview.user_id == user_id)
            .order_by(Interview.created_at.desc(), Interview.id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def save(self, interview: Interview, questions: List[Question] | None = None) -> Interview:
        if questions is not None:
            self.set_questions(interview, questions)
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)
        return interview

    def delete(self, interview: Interview):
        # delete-orphan cascade removes the row once it leaves the owner's collection
        interview.user.interviews.remove(interview)
        self.db.commit()

    @staticmethod
    def parse_questions(interview: Interview) -> List[Question]:
        return QuestionList.validate_json(interview.questions_json)

    @staticmethod
    def set_questions(interview: Interview, questions: List[Question]):
        interview.questions_json = QuestionList.dump_json(questions, by_alias=True).decode("utf-8")
