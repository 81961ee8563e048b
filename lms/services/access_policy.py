# lms/services/access_policy.py
import logging
from typing import Optional, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from lms.core.enum import EnrollmentStatus, UserRole
from lms.core.exceptions import Forbidden, NotFound
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.user import User
from lms.models.video import Video
from lms.schemas.auth import SessionIdentity

logger = logging.getLogger(__name__)

ENROLLMENT_REQUIRED = "EnrollmentRequired"

Subject = Union[SessionIdentity, User]


class AccessDecision(BaseModel):
    granted: bool
    reason: Optional[str] = None

    @classmethod
    def grant(cls, reason: str) -> "AccessDecision":
        return cls(granted=True, reason=reason)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(granted=False, reason=reason)


def _subject_id(subject: Subject) -> int:
    if isinstance(subject, SessionIdentity):
        return subject.user_id
    return subject.id


def _subject_role(subject: Subject) -> str:
    role = subject.role
    return role.value if isinstance(role, UserRole) else role


class AccessPolicyEngine:
    """
    Decides whether a subject may play a video.

    The checks form a precedence chain, first match wins:
    admin, course owner, preview video, Active enrollment.
    Blocked accounts never get here; the session authority rejects them.
    """

    def __init__(self, db: Session):
        self.db = db

    def authorize(self, subject: Subject, video: Video) -> AccessDecision:
        user_id = _subject_id(subject)

        if _subject_role(subject) == UserRole.ADMIN.value:
            return AccessDecision.grant("Admin")

        course = self.db.query(Course).filter(Course.id == video.course_id).first()
        if not course:
            raise NotFound("Course not found")

        if course.instructor_id == user_id:
            return AccessDecision.grant("Owner")

        if video.is_preview:
            return AccessDecision.grant("Preview")

        enrollment = (
            self.db.query(Enrollment)
            .filter(
                Enrollment.user_id == user_id,
                Enrollment.course_id == video.course_id,
            )
            .first()
        )
        if enrollment and enrollment.status == EnrollmentStatus.ACTIVE.value:
            return AccessDecision.grant("Enrolled")

        logger.debug(
            f"Access denied: user {user_id} has no active enrollment in course {video.course_id}"
        )
        return AccessDecision.deny(ENROLLMENT_REQUIRED)

    def require(self, subject: Subject, video: Video) -> AccessDecision:
        """Like authorize, but raises Forbidden on denial."""
        decision = self.authorize(subject, video)
        if not decision.granted:
            raise Forbidden(
                decision.reason, "You must be enrolled to watch this video"
            )
        return decision
