from sqlalchemy.orm import Session

from app.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_or_create(self, user_id: str) -> User:
        user = self.get(user_id)
        if user is None:
            user = User(id=user_id)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        return user
