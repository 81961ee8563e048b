# lms/services/session.py
"""
Single-active-session authentication.

A session token is only accepted while it is byte-for-byte the value stored
in ``users.current_session_token``. Issuing a new token overwrites that value,
which revokes every older token of the account at once, across processes and
restarts. Signature and expiry checks alone cannot express this.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from lms.core.exceptions import (
    AccountBlocked,
    NotFound,
    SessionSuperseded,
    Unauthenticated,
)
from lms.core.security import JWTManager, jwt_manager
from lms.models.user import User
from lms.schemas.auth import SessionIdentity

logger = logging.getLogger(__name__)


class SessionTokenAuthority:
    def __init__(self, db: Session, jwt: Optional[JWTManager] = None):
        self.db = db
        self.jwt = jwt or jwt_manager

    def issue(self, user_id: int) -> str:
        """
        Create a session token and make it the account's only live session.

        Raises:
            NotFound: unknown account
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")

        now = datetime.now(timezone.utc)
        token, _ = self.jwt.create_session_token(user, issued_at=now)

        # Single UPDATE: the previous token stops validating as soon as this commits
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update(
                {User.current_session_token: token, User.last_login: now},
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise NotFound("User not found")

        self.db.commit()
        logger.info(f"Session issued for user {user_id}")
        return token

    def validate(self, token: Optional[str]) -> SessionIdentity:
        """
        Resolve a bearer token to the identity it belongs to.

        Raises:
            Unauthenticated: token absent, malformed, expired, or account unknown
            SessionSuperseded: token is not the account's current session
            AccountBlocked: account is blocked
        """
        payload = self.jwt.verify_token(token, "access")

        user_id = payload.get("user_id")
        if user_id is None:
            raise Unauthenticated("Invalid token: missing user id")

        # Always read the stored token from the database, never from the identity map
        user = (
            self.db.query(User)
            .populate_existing()
            .filter(User.id == user_id)
            .first()
        )
        if not user:
            raise Unauthenticated("User not found")

        if user.current_session_token != token:
            logger.warning(f"Superseded session token presented for user {user_id}")
            raise SessionSuperseded()

        if user.is_blocked:
            logger.warning(f"Blocked user {user_id} attempted to use a session")
            raise AccountBlocked()

        exp = payload.get("exp")
        return SessionIdentity(
            user_id=user.id,
            role=user.role,
            is_blocked=user.is_blocked,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        )

    def revoke(self, token: Optional[str]) -> bool:
        """
        End the session holding ``token``. Idempotent.

        Returns:
            True if a live session was cleared, False if nothing matched
        """
        if not token:
            return False

        updated = (
            self.db.query(User)
            .filter(User.current_session_token == token)
            .update({User.current_session_token: None}, synchronize_session=False)
        )
        self.db.commit()

        if updated:
            logger.info("Session revoked")
        return bool(updated)
