from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from lms.core.enum import UserRole


class UserRegistrationRequest(BaseModel):
    """Self-service registration. The role is never taken from the request body."""

    model_config = ConfigDict(extra="forbid")

    user_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=8, max_length=100)
    confirm_password: str = Field(..., description="Password confirmation")

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class AdminUserCreateRequest(UserRegistrationRequest):
    """Account creation by an admin, the only place a role can be chosen."""

    role: UserRole = Field(default=UserRole.STUDENT, description="User role")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=16, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=100)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100)


class UserResponse(BaseModel):
    """User data returned to the client"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_name: str
    email: str
    role: UserRole
    is_blocked: bool
    courses_count: int
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class AuthResponse(BaseModel):
    """Successful login"""

    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse
    message: str = "Login successful"


class SessionIdentity(BaseModel):
    """Result of validating a session token against the credential store."""

    user_id: int
    role: UserRole
    is_blocked: bool = False
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class MessageResponse(BaseModel):
    success: bool = True
    message: str
