# lms/models/course.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func

from lms.core.database import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("students_count >= 0", name="ck_courses_students_count"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Basic Info
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, default=0)

    # Owner
    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    is_published = Column(Boolean, default=False, nullable=False)

    # Derived: number of Active enrollments, maintained by the enrollment lifecycle
    students_count = Column(Integer, default=0, server_default="0", nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', instructor_id={self.instructor_id})>"
