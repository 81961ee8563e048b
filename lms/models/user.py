from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.sql import func

from lms.core.database import Base
from lms.core.enum import UserRole


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("courses_count >= 0", name="ck_users_courses_count"),
    )

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    user_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Account status
    role = Column(String(20), default=UserRole.STUDENT.value, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)

    # The only session token accepted for this account; a new login replaces it
    current_session_token = Column(String(512), nullable=True, index=True)

    # SHA-256 of the emailed reset token, cleared on use
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Derived: number of Active enrollments, maintained by the enrollment lifecycle
    courses_count = Column(Integer, default=0, server_default="0", nullable=False)

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
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
