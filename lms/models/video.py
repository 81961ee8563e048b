# lms/models/video.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from lms.core.database import Base
from lms.core.enum import VideoStatus


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        # Positions inside a chapter are 1..n with no duplicates
        UniqueConstraint("chapter_id", "position", name="uq_videos_chapter_position"),
    )

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)

    # Relationships
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=False, index=True)

    # Identifier of the asset at the media host; this is the value that gets signed
    provider_video_id = Column(String(100), nullable=False, unique=True)
    library_id = Column(String(50), nullable=True)

    duration = Column(Integer, default=0, nullable=False)  # seconds

    # Order/Position in chapter (1-based)
    position = Column(Integer, nullable=False)

    # Viewable without an enrollment
    is_preview = Column(Boolean, default=False, nullable=False)

    # processing, ready, failed
    status = Column(String(20), default=VideoStatus.PROCESSING.value, nullable=False)

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
        return f"<Video(id={self.id}, chapter_id={self.chapter_id}, position={self.position})>"
