# lms/routers/course.py

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lms.core.database import get_db
from lms.core.dependencies import get_current_identity
from lms.core.enum import VideoStatus
from lms.schemas.auth import SessionIdentity
from lms.schemas.course import (
    ChapterResponse,
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    VideoCreate,
    VideoResponse,
)
from lms.schemas.media import SignedMediaResponse
from lms.services.course import CourseService

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    course_in: CourseCreate,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    """Create a course owned by the calling instructor"""
    return CourseService(db).create_course(current, course_in)


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, db: Session = Depends(get_db)):
    return CourseService(db).get_course(course_id)


@router.get("/{course_id}/chapters", response_model=List[ChapterResponse])
def get_course_chapters(course_id: int, db: Session = Depends(get_db)):
    """Course outline: chapters with their videos in playback order"""
    return CourseService(db).get_chapters(course_id)


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: int,
    course_in: CourseUpdate,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    """
    Update a course. Only title, description, price and is_published can be
    changed; any other field in the body is rejected with 422.
    """
    return CourseService(db).update_course(current, course_id, course_in)


# ==================== Videos ====================


@router.post(
    "/{course_id}/videos",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_video(
    course_id: int,
    video_in: VideoCreate,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    return CourseService(db).add_video(current, course_id, video_in)


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_video(
    video_id: int,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    CourseService(db).delete_video(current, video_id)


@router.patch("/videos/{video_id}/status", response_model=VideoResponse)
def set_video_status(
    video_id: int,
    video_status: VideoStatus,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    return CourseService(db).set_video_status(current, video_id, video_status)


@router.get(
    "/videos/{video_id}/sign",
    response_model=SignedMediaResponse,
    response_model_by_alias=True,
)
def sign_video(
    video_id: int,
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    """
    Get signed playback parameters for a video.

    Returns `{token, expires, videoId}` for the media host's embed player.
    Requires an Active enrollment unless the video is a preview or the caller
    owns the course or is an admin.
    """
    return CourseService(db).sign_video(current, video_id)
