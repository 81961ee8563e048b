from lms.core.enum import EnrollmentStatus, UserRole
from lms.models import Course, User
from lms.services.enrollment import EnrollmentLifecycle
from lms.services.reconciliation import CounterReconciler


def test_no_drift(db, make_user, make_course):
    make_course(make_user(role=UserRole.INSTRUCTOR))

    report = CounterReconciler(db).reconcile()

    assert report.courses_checked == 1
    assert report.users_checked == 1
    assert not report.drift_found


def test_fixes_drifted_counters(db, make_user, make_course, make_enrollment):
    instructor = make_user(role=UserRole.INSTRUCTOR)
    course = make_course(instructor)
    active = make_user()
    pending = make_user()
    make_enrollment(active, course, EnrollmentStatus.ACTIVE)
    make_enrollment(pending, course, EnrollmentStatus.PENDING)

    # Stale counter on the pending student
    db.query(User).filter(User.id == pending.id).update({User.courses_count: 3})
    db.commit()

    report = CounterReconciler(db).reconcile()

    assert report.drift_found
    assert report.courses_fixed == 1
    assert report.users_fixed == 2

    db.expire_all()
    assert db.get(Course, course.id).students_count == 1
    assert db.get(User, active.id).courses_count == 1
    assert db.get(User, pending.id).courses_count == 0

    assert not CounterReconciler(db).reconcile().drift_found


def test_approval_during_reconcile_is_kept(
    db, session_factory, make_user, make_course, make_enrollment, monkeypatch
):
    course = make_course(make_user(role=UserRole.INSTRUCTOR))
    student = make_user()
    enrollment = make_enrollment(student, course, EnrollmentStatus.PENDING)

    # Stale counter, so the course row is rewritten
    db.query(Course).filter(Course.id == course.id).update({Course.students_count: 5})
    db.commit()

    reconciler = CounterReconciler(db)
    original = reconciler._drifted
    approved = []

    def drifted_then_approve(*args, **kwargs):
        rows = original(*args, **kwargs)
        if not approved:
            other = session_factory()
            try:
                EnrollmentLifecycle(other).approve(enrollment.id)
            finally:
                other.close()
            approved.append(enrollment.id)
        return rows

    monkeypatch.setattr(reconciler, "_drifted", drifted_then_approve)

    reconciler.reconcile()

    db.expire_all()
    assert db.get(Course, course.id).students_count == 1
    assert db.get(User, student.id).courses_count == 1
