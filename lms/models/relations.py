# lms/models/relations.py

from sqlalchemy.orm import relationship

# Import all relevant models
from .chapter import Chapter
from .course import Course
from .enrollment import Enrollment
from .user import User
from .video import Video


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # --- Course content tree ---

    # 1. Course owns its chapters (One-to-Many)
    Course.chapters = relationship(
        "Chapter",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Chapter.position",
    )
    Chapter.course = relationship("Course", back_populates="chapters")

    # 2. Chapter owns its videos (One-to-Many)
    Chapter.videos = relationship(
        "Video",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="Video.position",
    )
    Video.chapter = relationship("Chapter", back_populates="videos")

    # 3. Video -> Course (lookup only; ownership goes through the chapter)
    Video.course = relationship("Course", viewonly=True)

    # 4. Course -> Instructor
    Course.instructor = relationship("User", foreign_keys=[Course.instructor_id])

    # --- Enrollments (weak back-references, lookup only) ---

    Enrollment.user = relationship(
        "User", foreign_keys=[Enrollment.user_id], viewonly=True
    )
    Enrollment.course = relationship("Course", viewonly=True)
