# core/security.py
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt

from lms.core.config import settings
from lms.core.exceptions import Unauthenticated
from lms.models.user import User

logger = logging.getLogger(__name__)


class JWTManager:
    """JWT encoding/decoding for session tokens"""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.session_token_expire = timedelta(
            hours=settings.jwt_session_expiration_hours
        )
        self.issuer = settings.jwt_issuer

    def create_session_token(
        self,
        user: User,
        custom_expiration: Optional[timedelta] = None,
        issued_at: Optional[datetime] = None,
    ) -> Tuple[str, datetime]:
        """
        Create a signed session token for a user.

        Args:
            user: User model instance
            custom_expiration: Override default lifetime
            issued_at: Override the issue time (defaults to now)

        Returns:
            Tuple of (token, expiration datetime)
        """
        issued_at = issued_at or datetime.now(timezone.utc)
        expire = issued_at + (custom_expiration or self.session_token_expire)

        payload = {
            "sub": str(user.id),  # Subject (user ID)
            "user_id": user.id,
            "role": user.role,
            "exp": int(expire.timestamp()),
            "iat": int(issued_at.timestamp()),
            "iss": self.issuer,
            "type": "access",
            # Two logins within the same second must still produce distinct tokens
            "jti": secrets.token_hex(16),
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Session token created for user: {user.id}")
        return token, expire

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify signature, expiry, issuer and type of a token.

        Raises:
            Unauthenticated: for any token that does not pass
        """
        if not token:
            raise Unauthenticated()

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
                issuer=self.issuer,
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise Unauthenticated("Invalid or expired token.")

        if payload.get("type") != token_type:
            raise Unauthenticated(f"Invalid token type. Expected {token_type}")

        return payload


class ResetTokenHelper:
    """Single-use password reset tokens. Only the SHA-256 digest is stored."""

    @staticmethod
    def generate() -> Tuple[str, str]:
        """Return (raw token for the user, digest for the database)"""
        raw = secrets.token_hex(32)
        return raw, ResetTokenHelper.digest(raw)

    @staticmethod
    def digest(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


# Global instances
jwt_manager = JWTManager()
