# lms/models/enrollment.py
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from lms.core.database import Base
from lms.core.enum import EnrollmentStatus


class Enrollment(Base):
    """
    Request-and-approval record linking a user to a course.
    One row per (user, course); rows are never deleted, only moved
    through the enrollment state machine.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # User and Course relationship
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    status = Column(
        String(20), nullable=False, default=EnrollmentStatus.PENDING.value, index=True
    )

    # Payment receipt handed back by the file intake
    proof_artifact_id = Column(String(100), nullable=False)
    proof_url = Column(Text, nullable=False)

    # Review
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    enrolled_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    status_changed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Enrollment(id={self.id}, user_id={self.user_id}, course_id={self.course_id}, status={self.status})>"
