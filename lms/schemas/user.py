# lms/schemas/user.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserProfileUpdate(BaseModel):
    """Fields a user may change on their own account.

    Role, block flag, counters and tokens are not writable here; unknown
    keys are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    user_name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
