# lms/services/enrollment.py
"""
Enrollment state machine.

    Pending --approve--> Active --complete/refund/expire--> Completed/Refunded/Expired
    Pending --reject---> Rejected

Entering Active adds one to ``courses.students_count`` and
``users.courses_count``; leaving Active takes one away. Both counters must
always equal the number of Active enrollments, so every transition is a
compare-and-swap on the current status followed by SQL-side arithmetic on
the counters, committed together. A transition that loses the race changes
nothing and reports InvalidTransition.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from lms.core.config import settings
from lms.core.decorator import db_exception
from lms.core.enum import ENROLLMENT_TRANSITIONS, EnrollmentStatus
from lms.core.exceptions import Conflict, InvalidTransition, NotFound
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.user import User
from lms.schemas.enrollment import ProofArtifact

logger = logging.getLogger(__name__)


class EnrollmentLifecycle:
    def __init__(self, db: Session):
        self.db = db
        self.max_attempts = max(1, settings.enrollment_transition_retries)

    # ==================== Request ====================

    @db_exception
    def request(
        self, user_id: int, course_id: int, proof: ProofArtifact
    ) -> Enrollment:
        """
        Ask to join a course. The enrollment starts Pending; counters are untouched.

        Raises:
            NotFound: course or user missing
            Conflict: an enrollment for (user, course) already exists
        """
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFound("Course not found")

        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise NotFound("User not found")

        existing = (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .first()
        )
        if existing:
            if (
                existing.status == EnrollmentStatus.REJECTED.value
                and settings.enrollment_allow_resubmission
            ):
                return self._resubmit(existing, proof)
            raise Conflict("User already enrolled")

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.PENDING.value,
            proof_artifact_id=proof.artifact_id,
            proof_url=proof.url,
            enrolled_at=datetime.now(timezone.utc),
        )
        self.db.add(enrollment)
        # A concurrent duplicate trips the unique constraint -> Conflict
        self.db.commit()
        self.db.refresh(enrollment)

        logger.info(
            f"Enrollment {enrollment.id} requested: user {user_id}, course {course_id}"
        )
        return enrollment

    def _resubmit(self, enrollment: Enrollment, proof: ProofArtifact) -> Enrollment:
        now = datetime.now(timezone.utc)
        updated = (
            self.db.query(Enrollment)
            .filter(
                Enrollment.id == enrollment.id,
                Enrollment.status == EnrollmentStatus.REJECTED.value,
            )
            .update(
                {
                    Enrollment.status: EnrollmentStatus.PENDING.value,
                    Enrollment.proof_artifact_id: proof.artifact_id,
                    Enrollment.proof_url: proof.url,
                    Enrollment.reviewed_by: None,
                    Enrollment.reviewed_at: None,
                    Enrollment.status_changed_at: now,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise Conflict("User already enrolled")

        self.db.commit()
        logger.info(f"Enrollment {enrollment.id} resubmitted after rejection")
        return self._reload(enrollment.id)

    # ==================== Transitions ====================

    def approve(self, enrollment_id: int, reviewer_id: Optional[int] = None) -> Enrollment:
        """Pending -> Active, incrementing both counters exactly once."""
        return self._transition(
            enrollment_id, EnrollmentStatus.PENDING, EnrollmentStatus.ACTIVE, reviewer_id
        )

    def reject(self, enrollment_id: int, reviewer_id: Optional[int] = None) -> Enrollment:
        """Pending -> Rejected. No counter changes."""
        return self._transition(
            enrollment_id, EnrollmentStatus.PENDING, EnrollmentStatus.REJECTED, reviewer_id
        )

    def complete(self, enrollment_id: int, reviewer_id: Optional[int] = None) -> Enrollment:
        return self._transition(
            enrollment_id, EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED, reviewer_id
        )

    def refund(self, enrollment_id: int, reviewer_id: Optional[int] = None) -> Enrollment:
        return self._transition(
            enrollment_id, EnrollmentStatus.ACTIVE, EnrollmentStatus.REFUNDED, reviewer_id
        )

    def expire(self, enrollment_id: int, reviewer_id: Optional[int] = None) -> Enrollment:
        return self._transition(
            enrollment_id, EnrollmentStatus.ACTIVE, EnrollmentStatus.EXPIRED, reviewer_id
        )

    @db_exception
    def _transition(
        self,
        enrollment_id: int,
        source: EnrollmentStatus,
        target: EnrollmentStatus,
        reviewer_id: Optional[int],
    ) -> Enrollment:
        if target not in ENROLLMENT_TRANSITIONS.get(source, set()):
            raise InvalidTransition(f"{source.value} -> {target.value} is not allowed")

        # Retrying is safe: every attempt re-checks the source status, so an
        # attempt that already committed makes the next one fail instead of re-applying.
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._apply_transition(enrollment_id, source, target, reviewer_id)
            except OperationalError as e:
                self.db.rollback()
                if attempt == self.max_attempts:
                    logger.error(
                        f"Enrollment {enrollment_id} {source.value} -> {target.value} "
                        f"failed after {attempt} attempts: {e}"
                    )
                    raise
                logger.warning(
                    f"Transient store error on enrollment {enrollment_id}, retrying "
                    f"({attempt}/{self.max_attempts})"
                )

    def _apply_transition(
        self,
        enrollment_id: int,
        source: EnrollmentStatus,
        target: EnrollmentStatus,
        reviewer_id: Optional[int],
    ) -> Enrollment:
        enrollment = self._load(enrollment_id)
        if enrollment.status != source.value:
            raise InvalidTransition(
                f"Enrollment is {enrollment.status}, expected {source.value}"
            )

        now = datetime.now(timezone.utc)
        values = {Enrollment.status: target.value, Enrollment.status_changed_at: now}
        if source == EnrollmentStatus.PENDING:
            values[Enrollment.reviewed_by] = reviewer_id
            values[Enrollment.reviewed_at] = now

        # Compare-and-swap: only one concurrent caller can move the row out of `source`
        swapped = (
            self.db.query(Enrollment)
            .filter(Enrollment.id == enrollment_id, Enrollment.status == source.value)
            .update(values, synchronize_session=False)
        )
        if swapped != 1:
            raise InvalidTransition(
                f"Enrollment {enrollment_id} is no longer {source.value}"
            )

        if target == EnrollmentStatus.ACTIVE:
            self._increment_counters(enrollment.course_id, enrollment.user_id)
        elif source == EnrollmentStatus.ACTIVE:
            self._decrement_counters(enrollment.course_id, enrollment.user_id)

        self.db.commit()
        logger.info(
            f"Enrollment {enrollment_id}: {source.value} -> {target.value}"
            + (f" by {reviewer_id}" if reviewer_id else "")
        )
        return self._reload(enrollment_id)

    def _increment_counters(self, course_id: int, user_id: int) -> None:
        courses = (
            self.db.query(Course)
            .filter(Course.id == course_id)
            .update(
                {Course.students_count: Course.students_count + 1},
                synchronize_session=False,
            )
        )
        users = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update(
                {User.courses_count: User.courses_count + 1},
                synchronize_session=False,
            )
        )
        if courses != 1 or users != 1:
            # Rolls back the status change too
            raise NotFound("Course or user of this enrollment no longer exists")

    def _decrement_counters(self, course_id: int, user_id: int) -> None:
        courses = (
            self.db.query(Course)
            .filter(Course.id == course_id, Course.students_count > 0)
            .update(
                {Course.students_count: Course.students_count - 1},
                synchronize_session=False,
            )
        )
        users = (
            self.db.query(User)
            .filter(User.id == user_id, User.courses_count > 0)
            .update(
                {User.courses_count: User.courses_count - 1},
                synchronize_session=False,
            )
        )
        if courses != 1 or users != 1:
            logger.warning(
                f"Counter drift detected while leaving Active "
                f"(course {course_id}, user {user_id}); reconciliation will correct it"
            )

    # ==================== Queries ====================

    def _load(self, enrollment_id: int) -> Enrollment:
        enrollment = (
            self.db.query(Enrollment)
            .populate_existing()
            .filter(Enrollment.id == enrollment_id)
            .first()
        )
        if not enrollment:
            raise NotFound("Enrollment not found")
        return enrollment

    def _reload(self, enrollment_id: int) -> Enrollment:
        return (
            self.db.query(Enrollment)
            .populate_existing()
            .filter(Enrollment.id == enrollment_id)
            .one()
        )

    def get_enrollment(self, enrollment_id: int) -> Enrollment:
        enrollment = (
            self.db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
        )
        if not enrollment:
            raise NotFound("Enrollment not found")
        return enrollment

    def get_user_enrollments(self, user_id: int) -> List[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .all()
        )

    def list_enrollments(
        self, status: Optional[EnrollmentStatus] = None, course_id: Optional[int] = None
    ) -> List[Enrollment]:
        query = self.db.query(Enrollment)
        if status is not None:
            query = query.filter(Enrollment.status == status.value)
        if course_id is not None:
            query = query.filter(Enrollment.course_id == course_id)
        return query.order_by(Enrollment.id).all()
