from sqlalchemy.orm import Session

from app.domains.auth.models import User
from app.shared.errors import NotFoundError


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_id(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")
        return user
