from typing import Annotated

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from lms.core.database import get_db
from lms.core.enum import UserRole
from lms.core.exceptions import Forbidden, Unauthenticated
from lms.schemas.auth import SessionIdentity
from lms.services.session import SessionTokenAuthority

security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> str:
    """Raw token from the ``Authorization: Bearer`` header."""
    if not credentials or not credentials.credentials:
        raise Unauthenticated()
    return credentials.credentials


def get_current_identity(
    token: Annotated[str, Depends(get_bearer_token)],
    db: Session = Depends(get_db),
) -> SessionIdentity:
    """
    Dependency that requires the caller's current, live session.
    Raises Unauthenticated, SessionSuperseded or AccountBlocked otherwise.
    """
    return SessionTokenAuthority(db).validate(token)


def require_role(*roles: UserRole):
    """
    Dependency factory restricting a route to the given roles.
    Usage: Depends(require_role(UserRole.ADMIN))
    """

    def role_checker(
        identity: Annotated[SessionIdentity, Depends(get_current_identity)],
    ) -> SessionIdentity:
        if identity.role not in roles:
            raise Forbidden(
                "RoleRequired",
                f"Requires role: {', '.join(role.value for role in roles)}",
            )
        return identity

    return role_checker


get_current_admin = require_role(UserRole.ADMIN)
