from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.core.database import get_db
from lms.core.dependencies import get_current_admin, get_current_identity
from lms.schemas.auth import AdminUserCreateRequest, SessionIdentity, UserResponse
from lms.schemas.user import UserProfileUpdate
from lms.services.auth import AuthService
from lms.services.user import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    user_in: AdminUserCreateRequest,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    """Create an account with an explicit role (Admin only)"""
    return AuthService(db).register_user(user_in, role=user_in.role)


@router.patch("/me", response_model=UserResponse)
def update_me(
    profile_in: UserProfileUpdate,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    return UserService(db).update_profile(current.user_id, profile_in)


@router.post("/{user_id}/block", response_model=UserResponse)
def block_user(
    user_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return UserService(db).set_blocked(user_id, True)


@router.post("/{user_id}/unblock", response_model=UserResponse)
def unblock_user(
    user_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return UserService(db).set_blocked(user_id, False)
