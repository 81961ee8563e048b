# lms/routers/enrollment.py

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from lms.core.database import get_db
from lms.core.dependencies import get_current_admin, get_current_identity
from lms.core.enum import EnrollmentStatus
from lms.core.exceptions import AppException
from lms.schemas.auth import SessionIdentity
from lms.schemas.enrollment import EnrollmentListResponse, EnrollmentResponse
from lms.services.enrollment import EnrollmentLifecycle
from lms.utils.file_upload import file_upload_service

router = APIRouter(
    prefix="/enrollments",
    tags=["Enrollments"],
    responses={404: {"description": "Not found"}},
)


@router.post("", response_model=EnrollmentResponse, status_code=201)
async def request_enrollment(
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    course_id: int = Form(..., ge=1),
    receipt: UploadFile = File(..., description="Payment receipt (image or PDF)"),
    db: Session = Depends(get_db),
):
    """
    Ask to join a course by uploading a payment receipt.

    The enrollment is created Pending and waits for an admin decision.
    """
    proof = await file_upload_service.save_receipt(receipt)
    try:
        return EnrollmentLifecycle(db).request(current.user_id, course_id, proof)
    except AppException:
        # Refused requests (unknown course, duplicate) keep no receipt on disk
        file_upload_service.delete_receipt(proof)
        raise


@router.get("/my-courses", response_model=EnrollmentListResponse)
def get_my_enrollments(
    current: Annotated[SessionIdentity, Depends(get_current_identity)],
    db: Session = Depends(get_db),
):
    enrollments = EnrollmentLifecycle(db).get_user_enrollments(current.user_id)
    return EnrollmentListResponse(
        enrollments=[EnrollmentResponse.model_validate(e) for e in enrollments],
        total=len(enrollments),
    )


# ==================== Admin ====================


@router.get("", response_model=EnrollmentListResponse)
def list_enrollments(
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    status: Optional[EnrollmentStatus] = Query(None),
    course_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """List enrollments, e.g. `?status=Pending` for the review queue"""
    enrollments = EnrollmentLifecycle(db).list_enrollments(
        status=status, course_id=course_id
    )
    return EnrollmentListResponse(
        enrollments=[EnrollmentResponse.model_validate(e) for e in enrollments],
        total=len(enrollments),
    )


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
def get_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return EnrollmentLifecycle(db).get_enrollment(enrollment_id)


@router.post("/{enrollment_id}/approve", response_model=EnrollmentResponse)
def approve_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    """Pending -> Active. Course and user counters go up by one."""
    return EnrollmentLifecycle(db).approve(enrollment_id, reviewer_id=admin.user_id)


@router.post("/{enrollment_id}/reject", response_model=EnrollmentResponse)
def reject_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return EnrollmentLifecycle(db).reject(enrollment_id, reviewer_id=admin.user_id)


@router.post("/{enrollment_id}/complete", response_model=EnrollmentResponse)
def complete_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return EnrollmentLifecycle(db).complete(enrollment_id, reviewer_id=admin.user_id)


@router.post("/{enrollment_id}/refund", response_model=EnrollmentResponse)
def refund_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return EnrollmentLifecycle(db).refund(enrollment_id, reviewer_id=admin.user_id)


@router.post("/{enrollment_id}/expire", response_model=EnrollmentResponse)
def expire_enrollment(
    enrollment_id: int,
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    return EnrollmentLifecycle(db).expire(enrollment_id, reviewer_id=admin.user_id)
