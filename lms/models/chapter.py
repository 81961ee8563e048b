# lms/models/chapter.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from lms.core.database import Base


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("course_id", "title", name="uq_chapters_course_title"),
    )

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)

    # Course relationship
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # Order/Position in course (1-based)
    position = Column(Integer, default=1, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return (
            f"<Chapter(id={self.id}, title='{self.title}', course_id={self.course_id})>"
        )
