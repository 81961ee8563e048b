# lms/services/reconciliation.py
import logging
from typing import List, Tuple

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lms.core.enum import EnrollmentStatus
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.user import User

logger = logging.getLogger(__name__)


class ReconciliationReport(BaseModel):
    courses_checked: int = 0
    courses_fixed: int = 0
    users_checked: int = 0
    users_fixed: int = 0

    @property
    def drift_found(self) -> bool:
        return bool(self.courses_fixed or self.users_fixed)


class CounterReconciler:
    """
    Recomputes students_count / courses_count from the Active enrollment set
    and overwrites any counter that drifted.

    Each counter is rewritten by one UPDATE whose new value is a correlated
    COUNT over enrollments, so an approval committed while the job runs is
    counted instead of being overwritten with an older figure.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _active_count(owner, enrollment_fk):
        return (
            select(func.count(Enrollment.id))
            .where(
                enrollment_fk == owner.id,
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
            )
            .correlate(owner)
            .scalar_subquery()
        )

    def _drifted(self, owner, counter, actual) -> List[Tuple[int, int, int]]:
        """Rows whose counter disagrees with the Active set; read for the log only."""
        return self.db.query(owner.id, counter, actual).filter(counter != actual).all()

    def _recount(self, owner, counter, enrollment_fk) -> int:
        actual = self._active_count(owner, enrollment_fk)

        for row_id, stored, expected in self._drifted(owner, counter, actual):
            logger.warning(
                f"{owner.__name__} {row_id} {counter.key} drift: "
                f"stored={stored} actual={expected}"
            )

        return (
            self.db.query(owner)
            .filter(counter != actual)
            .update({counter: actual}, synchronize_session=False)
        )

    def reconcile(self) -> ReconciliationReport:
        report = ReconciliationReport(
            courses_checked=self.db.query(func.count(Course.id)).scalar(),
            users_checked=self.db.query(func.count(User.id)).scalar(),
        )

        report.courses_fixed = self._recount(
            Course, Course.students_count, Enrollment.course_id
        )
        report.users_fixed = self._recount(User, User.courses_count, Enrollment.user_id)

        self.db.commit()
        logger.info(
            f"Counter reconciliation done: {report.courses_fixed}/{report.courses_checked} "
            f"courses and {report.users_fixed}/{report.users_checked} users corrected"
        )
        return report
