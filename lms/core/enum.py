from enum import Enum


class UserRole(str, Enum):
    STUDENT = "Student"
    INSTRUCTOR = "Instructor"
    ADMIN = "Admin"


class EnrollmentStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    REFUNDED = "Refunded"
    EXPIRED = "Expired"


class VideoStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# Legal moves of the enrollment state machine. Anything missing is terminal.
ENROLLMENT_TRANSITIONS = {
    EnrollmentStatus.PENDING: {EnrollmentStatus.ACTIVE, EnrollmentStatus.REJECTED},
    EnrollmentStatus.ACTIVE: {
        EnrollmentStatus.COMPLETED,
        EnrollmentStatus.REFUNDED,
        EnrollmentStatus.EXPIRED,
    },
}
