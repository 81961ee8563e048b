# lms/services/course.py
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lms.core.decorator import db_exception
from lms.core.enum import UserRole, VideoStatus
from lms.core.exceptions import Forbidden, NotFound
from lms.models.chapter import Chapter
from lms.models.course import Course
from lms.models.video import Video
from lms.schemas.auth import SessionIdentity
from lms.schemas.course import CourseCreate, CourseUpdate, VideoCreate
from lms.schemas.media import SignedMediaResponse
from lms.services.access_policy import AccessPolicyEngine
from lms.utils.media_signing import SignedMediaUrlIssuer, media_url_issuer

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, db: Session, issuer: Optional[SignedMediaUrlIssuer] = None):
        self.db = db
        self.issuer = issuer or media_url_issuer
        self.policy = AccessPolicyEngine(db)

    # ==================== Courses ====================

    @db_exception
    def create_course(self, subject: SessionIdentity, course_in: CourseCreate) -> Course:
        """Instructors create courses they own."""
        if subject.role != UserRole.INSTRUCTOR:
            raise Forbidden(
                "InstructorRequired", "Not authorized to create course only Instructor can"
            )

        course = Course(**course_in.model_dump(), instructor_id=subject.user_id)
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        logger.info(f"Course {course.id} created by instructor {subject.user_id}")
        return course

    def get_course(self, course_id: int) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFound("Course not found")
        return course

    def get_chapters(self, course_id: int) -> List[Chapter]:
        self.get_course(course_id)
        return (
            self.db.query(Chapter)
            .filter(Chapter.course_id == course_id)
            .order_by(Chapter.position)
            .all()
        )

    @db_exception
    def update_course(
        self, subject: SessionIdentity, course_id: int, course_in: CourseUpdate
    ) -> Course:
        course = self.get_course(course_id)
        self._require_owner(subject, course)

        for field, value in course_in.model_dump(exclude_unset=True).items():
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)
        return course

    def _require_owner(self, subject: SessionIdentity, course: Course) -> None:
        if subject.is_admin or course.instructor_id == subject.user_id:
            return
        raise Forbidden("NotCourseOwner", "Not authorized to modify this course")

    # ==================== Videos ====================

    @db_exception
    def add_video(
        self, subject: SessionIdentity, course_id: int, video_in: VideoCreate
    ) -> Video:
        """
        Append a video at the end of its chapter (created on first use).
        Positions stay 1..n per chapter.
        """
        course = self.get_course(course_id)
        self._require_owner(subject, course)

        chapter = (
            self.db.query(Chapter)
            .filter(Chapter.course_id == course_id, Chapter.title == video_in.chapter_title)
            .first()
        )
        if not chapter:
            chapter_count = (
                self.db.query(func.count(Chapter.id))
                .filter(Chapter.course_id == course_id)
                .scalar()
            )
            chapter = Chapter(
                course_id=course_id,
                title=video_in.chapter_title,
                position=chapter_count + 1,
            )
            self.db.add(chapter)
            self.db.flush()

        video_count = (
            self.db.query(func.count(Video.id))
            .filter(Video.chapter_id == chapter.id)
            .scalar()
        )
        video = Video(
            title=video_in.title,
            course_id=course_id,
            chapter_id=chapter.id,
            provider_video_id=video_in.provider_video_id,
            library_id=video_in.library_id,
            duration=video_in.duration,
            is_preview=video_in.is_preview,
            status=VideoStatus.PROCESSING.value,
            position=video_count + 1,
        )
        self.db.add(video)
        # Two concurrent appends race on (chapter_id, position) -> Conflict
        self.db.commit()
        self.db.refresh(video)

        logger.info(
            f"Video {video.id} added to course {course_id}, chapter {chapter.id} at {video.position}"
        )
        return video

    def get_video(self, video_id: int) -> Video:
        video = self.db.query(Video).filter(Video.id == video_id).first()
        if not video:
            raise NotFound("Video not found")
        return video

    @db_exception
    def delete_video(self, subject: SessionIdentity, video_id: int) -> None:
        """Remove a video and close the gap it leaves in its chapter."""
        video = self.get_video(video_id)
        course = self.get_course(video.course_id)
        self._require_owner(subject, course)

        chapter_id, removed_position = video.chapter_id, video.position
        self.db.delete(video)
        self.db.flush()

        # Shift in two steps so (chapter_id, position) stays unique row by row
        later = self.db.query(Video).filter(
            Video.chapter_id == chapter_id, Video.position > removed_position
        )
        later.update({Video.position: -Video.position}, synchronize_session=False)
        self.db.query(Video).filter(
            Video.chapter_id == chapter_id, Video.position < 0
        ).update({Video.position: -Video.position - 1}, synchronize_session=False)

        self.db.commit()
        logger.info(f"Video {video_id} deleted from chapter {chapter_id}")

    @db_exception
    def set_video_status(
        self, subject: SessionIdentity, video_id: int, status: VideoStatus
    ) -> Video:
        video = self.get_video(video_id)
        self._require_owner(subject, self.get_course(video.course_id))
        video.status = status.value
        self.db.commit()
        self.db.refresh(video)
        return video

    # ==================== Playback ====================

    def sign_video(self, subject: SessionIdentity, video_id: int) -> SignedMediaResponse:
        """
        Authorize the subject for this video and mint a playback token.

        Raises:
            NotFound: unknown video
            Forbidden: access policy denied (reason ``EnrollmentRequired``)
            ConfigurationError: no signing key
        """
        video = self.get_video(video_id)
        self.policy.require(subject, video)

        signed = self.issuer.sign(video.provider_video_id)
        return SignedMediaResponse(
            signed_url_params=signed,
            embed_url=self.issuer.embed_url(signed, video.library_id),
        )
