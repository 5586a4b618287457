from app.models.interview import Interview
from app.models.user import User

__all__ = [
    "Interview",
    "User",
]
