import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lms.core.config import settings
from lms.core.database import get_db
from lms.core.dependencies import get_bearer_token, get_current_identity
from lms.core.exceptions import NotFound
from lms.core.limiter import limiter
from lms.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SessionIdentity,
    UserRegistrationRequest,
    UserResponse,
)
from lms.services.auth import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
def register_user(
    register_in: UserRegistrationRequest, db: Session = Depends(get_db)
) -> UserResponse:
    """Create a Student account"""
    user = AuthService(db).register_user(register_in)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request, login_in: LoginRequest, db: Session = Depends(get_db)
) -> AuthResponse:
    """Log in. Any previous session of the account is revoked."""
    return AuthService(db).login(login_in)


@router.post("/logout", response_model=MessageResponse)
def logout(
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    token: Annotated[str, Depends(get_bearer_token)],
    db: Session = Depends(get_db),
) -> MessageResponse:
    """End the current session"""
    AuthService(db).logout(token)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
) -> UserResponse:
    """Get current user information"""
    user = AuthService(db).get_user(current.user_id)
    return UserResponse.model_validate(user)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.login_rate_limit)
def forgot_password(
    request: Request, forgot_in: ForgotPasswordRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """
    Start a password reset. Delivery of the reset link is handled outside
    this service, so the response is the same whether or not the email exists.
    """
    try:
        AuthService(db).initiate_password_reset(forgot_in.email)
    except NotFound:
        logger.info("Password reset requested for unknown email")
    return MessageResponse(
        message="If the email is registered, a reset link has been sent"
    )


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    reset_in: ResetPasswordRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    AuthService(db).reset_password(reset_in.token, reset_in.new_password)
    return MessageResponse(message="Password has been reset. Please log in again.")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    change_in: ChangePasswordRequest,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
) -> MessageResponse:
    AuthService(db).change_password(current.user_id, change_in)
    return MessageResponse(message="Password changed")
