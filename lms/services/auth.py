# lms/services/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from lms.core.config import settings
from lms.core.decorator import db_exception
from lms.core.enum import UserRole
from lms.core.exceptions import AccountBlocked, Conflict, NotFound, Unauthenticated
from lms.core.hasher import PasswordHelper
from lms.core.security import ResetTokenHelper
from lms.models.user import User
from lms.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    UserRegistrationRequest,
    UserResponse,
)
from lms.services.session import SessionTokenAuthority

# Setup logging
logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.password_helper = PasswordHelper()
        self.sessions = SessionTokenAuthority(db)

    # ==================== REGISTRATION ====================

    @db_exception
    def register_user(
        self, request: UserRegistrationRequest, role: UserRole = UserRole.STUDENT
    ) -> User:
        email = request.email.lower()
        if self.db.query(User.id).filter(User.email == email).first():
            raise Conflict("Email already exists")

        user = User(
            user_name=request.user_name.strip(),
            email=email,
            hashed_password=self.password_helper.hash_password(request.password),
            role=role.value,
            is_blocked=False,
            courses_count=0,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered: {user.id} ({user.role})")
        return user

    # ==================== LOGIN / LOGOUT ====================

    def login(self, request: LoginRequest) -> AuthResponse:
        """
        Check credentials and open a new session.
        Any session the account held before stops working immediately.
        """
        user = (
            self.db.query(User).filter(User.email == request.email.lower()).first()
        )
        if not user or not self.password_helper.check_password(
            request.password, user.hashed_password
        ):
            raise Unauthenticated("Invalid email or password")

        if user.is_blocked:
            raise AccountBlocked("Account is blocked")

        token = self.sessions.issue(user.id)
        self.db.refresh(user)

        logger.info(f"User login successful: {user.id}")

        return AuthResponse(
            access_token=token,
            expires_in=int(
                timedelta(hours=settings.jwt_session_expiration_hours).total_seconds()
            ),
            user=self._user_to_response(user),
        )

    def logout(self, token: str) -> bool:
        return self.sessions.revoke(token)

    # ==================== PASSWORD ====================

    @db_exception
    def initiate_password_reset(self, email: str) -> str:
        """
        Store a fresh single-use reset token and return the raw value for delivery.
        Only its digest is kept in the database.
        """
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user:
            raise NotFound("Email not found")

        raw_token, digest = ResetTokenHelper.generate()
        user.reset_token = digest
        user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.reset_token_expiration_minutes
        )
        self.db.commit()

        logger.info(f"Password reset requested for user {user.id}")
        return raw_token

    @db_exception
    def reset_password(self, raw_token: str, new_password: str) -> User:
        """
        Consume a reset token. The token, and any open session, are cleared
        in the same UPDATE that sets the new password.
        """
        digest = ResetTokenHelper.digest(raw_token)
        now = datetime.now(timezone.utc)

        user = (
            self.db.query(User)
            .filter(User.reset_token == digest, User.reset_token_expires_at > now)
            .first()
        )
        if not user:
            raise Unauthenticated("Invalid or expired token")

        updated = (
            self.db.query(User)
            .filter(User.id == user.id, User.reset_token == digest)
            .update(
                {
                    User.hashed_password: self.password_helper.hash_password(
                        new_password
                    ),
                    User.reset_token: None,
                    User.reset_token_expires_at: None,
                    User.current_session_token: None,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            # Someone else used the token first
            raise Unauthenticated("Invalid or expired token")

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Password reset completed for user {user.id}")
        return user

    @db_exception
    def change_password(self, user_id: int, request: ChangePasswordRequest) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")

        if not self.password_helper.check_password(
            request.current_password, user.hashed_password
        ):
            raise Unauthenticated("Current password is incorrect")

        user.hashed_password = self.password_helper.hash_password(request.new_password)
        self.db.commit()
        self.db.refresh(user)
        return user

    # ==================== HELPERS ====================

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def _user_to_response(user: User) -> UserResponse:
        return UserResponse.model_validate(user)
