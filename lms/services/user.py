# lms/services/user.py

import logging
from typing import Optional

from sqlalchemy.orm import Session

from lms.core.decorator import db_exception
from lms.core.exceptions import Conflict, NotFound
from lms.models.user import User
from lms.schemas.user import UserProfileUpdate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        """
        Retrieves a single user by their ID.
        """
        return self.db.query(User).filter(User.id == user_id).first()

    def _get_or_404(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    @db_exception
    def update_profile(self, user_id: int, data: UserProfileUpdate) -> User:
        """Apply only the allow-listed profile fields."""
        user = self._get_or_404(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            taken = (
                self.db.query(User.id)
                .filter(User.email == changes["email"], User.id != user_id)
                .first()
            )
            if taken:
                raise Conflict("Email already exists")

        for field, value in changes.items():
            setattr(user, field, value)

        self.db.commit()
        self.db.refresh(user)
        return user

    @db_exception
    def set_blocked(self, user_id: int, blocked: bool) -> User:
        """
        Block or unblock an account. A blocked account's session token keeps
        failing with AccountBlocked until it is unblocked; login is refused.
        """
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.is_blocked: blocked}, synchronize_session=False)
        )
        if updated != 1:
            raise NotFound("User not found")
        self.db.commit()

        logger.info(f"User {user_id} {'blocked' if blocked else 'unblocked'}")
        return self._get_or_404(user_id)
