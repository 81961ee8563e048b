# lms/schemas/enrollment.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lms.core.enum import EnrollmentStatus

# ==================== Enrollment Schemas ====================


class ProofArtifact(BaseModel):
    """Reference to a stored payment receipt, as returned by the file intake"""

    artifact_id: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    proof_artifact_id: str
    proof_url: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None


class EnrollmentListResponse(BaseModel):
    enrollments: List[EnrollmentResponse]
    total: int
