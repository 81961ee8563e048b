import pytest
from sqlalchemy.exc import OperationalError

from lms.core.config import settings
from lms.core.enum import EnrollmentStatus, UserRole
from lms.core.exceptions import Conflict, InvalidTransition, NotFound
from lms.models import Course, User
from lms.schemas.enrollment import ProofArtifact
from lms.services.enrollment import EnrollmentLifecycle

PROOF = ProofArtifact(artifact_id="a1b2", url="/storage/receipts/a1b2.png")


@pytest.fixture
def parties(make_user, make_course):
    instructor = make_user(role=UserRole.INSTRUCTOR)
    return {
        "admin": make_user(role=UserRole.ADMIN),
        "student": make_user(),
        "course": make_course(instructor),
    }


def counters(db, course, user):
    db.expire_all()
    return (
        db.get(Course, course.id).students_count,
        db.get(User, user.id).courses_count,
    )


def test_request_creates_pending(db, parties):
    enrollment = EnrollmentLifecycle(db).request(
        parties["student"].id, parties["course"].id, PROOF
    )

    assert enrollment.status == EnrollmentStatus.PENDING.value
    assert enrollment.proof_artifact_id == "a1b2"
    assert counters(db, parties["course"], parties["student"]) == (0, 0)


def test_request_unknown_course(db, parties):
    with pytest.raises(NotFound):
        EnrollmentLifecycle(db).request(parties["student"].id, 999, PROOF)


def test_duplicate_request_conflicts(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    with pytest.raises(Conflict):
        lifecycle.request(parties["student"].id, parties["course"].id, PROOF)


def test_approve_increments_both_counters(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    approved = lifecycle.approve(enrollment.id, reviewer_id=parties["admin"].id)

    assert approved.status == EnrollmentStatus.ACTIVE.value
    assert approved.reviewed_by == parties["admin"].id
    assert approved.reviewed_at is not None
    assert counters(db, parties["course"], parties["student"]) == (1, 1)


def test_approve_twice_counts_once(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    lifecycle.approve(enrollment.id)
    with pytest.raises(InvalidTransition):
        lifecycle.approve(enrollment.id)

    assert counters(db, parties["course"], parties["student"]) == (1, 1)


def test_approve_unknown_enrollment(db):
    with pytest.raises(NotFound):
        EnrollmentLifecycle(db).approve(999)


def test_reject_leaves_counters(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    rejected = lifecycle.reject(enrollment.id)

    assert rejected.status == EnrollmentStatus.REJECTED.value
    assert counters(db, parties["course"], parties["student"]) == (0, 0)
    with pytest.raises(InvalidTransition):
        lifecycle.approve(enrollment.id)


@pytest.mark.parametrize(
    "action, target",
    [
        ("complete", EnrollmentStatus.COMPLETED),
        ("refund", EnrollmentStatus.REFUNDED),
        ("expire", EnrollmentStatus.EXPIRED),
    ],
)
def test_leaving_active_decrements_counters(db, parties, action, target):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)
    lifecycle.approve(enrollment.id)

    result = getattr(lifecycle, action)(enrollment.id)

    assert result.status == target.value
    assert counters(db, parties["course"], parties["student"]) == (0, 0)
    with pytest.raises(InvalidTransition):
        getattr(lifecycle, action)(enrollment.id)


def test_pending_cannot_be_refunded(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    with pytest.raises(InvalidTransition):
        lifecycle.refund(enrollment.id)
    assert lifecycle.get_enrollment(enrollment.id).status == EnrollmentStatus.PENDING.value


def test_decrement_never_goes_negative(db, parties, make_enrollment):
    # Active row whose counters were never incremented (drifted data)
    enrollment = make_enrollment(parties["student"], parties["course"], EnrollmentStatus.ACTIVE)

    EnrollmentLifecycle(db).refund(enrollment.id)

    assert counters(db, parties["course"], parties["student"]) == (0, 0)


def test_counters_track_several_students(db, parties, make_user):
    lifecycle = EnrollmentLifecycle(db)
    course = parties["course"]
    students = [make_user() for _ in range(3)]
    ids = [lifecycle.request(s.id, course.id, PROOF).id for s in students]

    for enrollment_id in ids:
        lifecycle.approve(enrollment_id)
    lifecycle.refund(ids[0])

    db.expire_all()
    assert db.get(Course, course.id).students_count == 2
    assert [db.get(User, s.id).courses_count for s in students] == [0, 1, 1]


def test_rejected_cannot_resubmit_by_default(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)
    lifecycle.reject(enrollment.id)

    with pytest.raises(Conflict):
        lifecycle.request(parties["student"].id, parties["course"].id, PROOF)


def test_rejected_can_resubmit_when_enabled(db, parties, monkeypatch):
    monkeypatch.setattr(settings, "enrollment_allow_resubmission", True)
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)
    lifecycle.reject(enrollment.id)

    new_proof = ProofArtifact(artifact_id="c3d4", url="/storage/receipts/c3d4.png")
    resubmitted = lifecycle.request(parties["student"].id, parties["course"].id, new_proof)

    assert resubmitted.id == enrollment.id
    assert resubmitted.status == EnrollmentStatus.PENDING.value
    assert resubmitted.proof_artifact_id == "c3d4"
    assert resubmitted.reviewed_by is None


def test_transient_error_is_retried(db, parties, monkeypatch):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    original = lifecycle._apply_transition
    calls = {"n": 0}

    def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("UPDATE", {}, Exception("database is locked"))
        return original(*args, **kwargs)

    monkeypatch.setattr(lifecycle, "_apply_transition", flaky)

    approved = lifecycle.approve(enrollment.id)

    assert calls["n"] == 2
    assert approved.status == EnrollmentStatus.ACTIVE.value
    assert counters(db, parties["course"], parties["student"]) == (1, 1)


def test_list_enrollments_by_status(db, parties, make_user):
    lifecycle = EnrollmentLifecycle(db)
    course = parties["course"]
    first = lifecycle.request(parties["student"].id, course.id, PROOF)
    lifecycle.request(make_user().id, course.id, PROOF)
    lifecycle.approve(first.id)

    pending = lifecycle.list_enrollments(status=EnrollmentStatus.PENDING)
    active = lifecycle.list_enrollments(status=EnrollmentStatus.ACTIVE, course_id=course.id)

    assert len(pending) == 1
    assert [e.id for e in active] == [first.id]
    assert len(lifecycle.get_user_enrollments(parties["student"].id)) == 1


def test_failed_counter_update_keeps_pending(db, parties):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    # Course row gone: the status change must be rolled back with the counters
    db.query(Course).filter(Course.id == parties["course"].id).delete(
        synchronize_session=False
    )
    db.commit()

    with pytest.raises(NotFound):
        lifecycle.approve(enrollment.id)

    db.expire_all()
    assert lifecycle.get_enrollment(enrollment.id).status == EnrollmentStatus.PENDING.value
    assert db.get(User, parties["student"].id).courses_count == 0


def test_concurrent_approve_loses_compare_and_swap(db, session_factory, parties, monkeypatch):
    lifecycle = EnrollmentLifecycle(db)
    enrollment = lifecycle.request(parties["student"].id, parties["course"].id, PROOF)

    original = lifecycle._load

    def load_then_race(enrollment_id):
        loaded = original(enrollment_id)
        # Another worker approves after this one has read Pending
        other = session_factory()
        try:
            EnrollmentLifecycle(other).approve(enrollment_id)
        finally:
            other.close()
        return loaded

    monkeypatch.setattr(lifecycle, "_load", load_then_race)

    with pytest.raises(InvalidTransition):
        lifecycle.approve(enrollment.id)

    assert counters(db, parties["course"], parties["student"]) == (1, 1)
    assert lifecycle.get_enrollment(enrollment.id).status == EnrollmentStatus.ACTIVE.value
