# lms/schemas/course.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lms.core.enum import VideoStatus

# ==================== Course Schemas ====================


class CourseCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    is_published: bool = False


class CourseUpdate(BaseModel):
    """Every field a course owner may change. Anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    is_published: Optional[bool] = None

    @field_validator("title", "price", "is_published")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; only description can be cleared
        if v is None:
            raise ValueError("may not be null")
        return v


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    price: Decimal
    instructor_id: int
    is_published: bool
    students_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ==================== Video Schemas ====================


class VideoCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=255)
    chapter_title: str = Field(default="General", min_length=1, max_length=255)
    provider_video_id: str = Field(..., min_length=1, max_length=100)
    library_id: Optional[str] = Field(None, max_length=50)
    duration: int = Field(default=0, ge=0)
    is_preview: bool = False


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    course_id: int
    chapter_id: int
    position: int
    duration: int
    is_preview: bool
    status: VideoStatus


class ChapterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    position: int
    videos: List[VideoResponse] = []
