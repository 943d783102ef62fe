from sqlalchemy.orm import Session as DbSession
from schemaboard.db.models import Session, User
from typing import Optional

class UserRepository:
    """Repository for user lookups."""

    def __init__(self, db: DbSession):
        self.db = db

    def get_user(self, user_id: str) -> Optional[User]:
        """
        Get a user by ID.

        Args:
            user_id: User ID

        Returns:
            User if found, None otherwise
        """
        return self.db.query(User).filter(User.id == user_id).first()


class SessionRepository:
    """Repository for login session lookups."""

    def __init__(self, db: DbSession):
        self.db = db

    def get_session(self, session_id: str) -> Optional[Session]:
        """
        Get a login session by ID.

        Args:
            session_id: Session ID

        Returns:
            Session if found, None otherwise
        """
        return self.db.query(Session).filter(Session.id == session_id).first()
