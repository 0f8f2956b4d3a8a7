"""Identity lookup used to validate member references before committing."""
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from app.models.user import User


class UserDirectory(Protocol):
    def exists(self, user_id: str) -> bool: ...

    def find(self, user_id: str) -> Optional[User]: ...


class SqlUserDirectory:
    """UserDirectory backed by the ``users`` table of the same session."""

    def __init__(self, db: Session):
        self.db = db

    def exists(self, user_id: str) -> bool:
        return self.find(user_id) is not None

    def find(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.user_id == user_id).first()

