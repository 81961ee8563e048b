"""
Pytest configuration for backend tests.

Settings are read once at import, so the environment is prepared here before
anything from ``lms`` is imported. Every test gets a fresh in-memory SQLite
database.
"""

import os
import tempfile
from decimal import Decimal
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="lms-tests-"))

os.environ.update(
    {
        "DATABASE_URL": "sqlite://",
        "DEBUG": "false",
        "JWT_SECRET": "test-jwt-secret",
        "MEDIA_SIGNING_KEY": "test-signing-key",
        "MEDIA_LIBRARY_ID": "12345",
        "PASSWORD_HASH_ROUNDS": "4",
        "RATE_LIMIT_ENABLED": "false",
        "RATE_LIMIT_STORAGE": "memory://",
        "RECONCILIATION_ENABLED": "false",
        "UPLOAD_DIR": str(_TMP_DIR / "storage"),
        "LOG_FILE": str(_TMP_DIR / "logs" / "app.log"),
    }
)

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lms.core.database import Base, get_db  # noqa: E402
from lms.core.enum import EnrollmentStatus, UserRole  # noqa: E402
from lms.core.hasher import PasswordHelper  # noqa: E402
from lms.models import Chapter, Course, Enrollment, User, Video  # noqa: E402
from lms.schemas.auth import SessionIdentity  # noqa: E402

DEFAULT_PASSWORD = "Passw0rd!23"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.STUDENT, email=None, password=DEFAULT_PASSWORD, blocked=False):
        counter["n"] += 1
        user = User(
            user_name=f"user{counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            hashed_password=PasswordHelper.hash_password(password),
            role=role.value,
            is_blocked=blocked,
            courses_count=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_course(db):
    def _make_course(instructor, title="Course", price=Decimal("10.00")):
        course = Course(
            title=title,
            price=price,
            instructor_id=instructor.id,
            is_published=True,
            students_count=0,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make_course


@pytest.fixture
def make_video(db):
    counter = {"n": 0}

    def _make_video(course, is_preview=False, chapter_title="General"):
        counter["n"] += 1
        chapter = (
            db.query(Chapter)
            .filter(Chapter.course_id == course.id, Chapter.title == chapter_title)
            .first()
        )
        if not chapter:
            position = db.query(Chapter).filter(Chapter.course_id == course.id).count() + 1
            chapter = Chapter(course_id=course.id, title=chapter_title, position=position)
            db.add(chapter)
            db.flush()

        position = db.query(Video).filter(Video.chapter_id == chapter.id).count() + 1
        video = Video(
            title=f"Video {counter['n']}",
            course_id=course.id,
            chapter_id=chapter.id,
            provider_video_id=f"provider-{counter['n']}",
            position=position,
            is_preview=is_preview,
        )
        db.add(video)
        db.commit()
        db.refresh(video)
        return video

    return _make_video


@pytest.fixture
def make_enrollment(db):
    def _make_enrollment(user, course, status=EnrollmentStatus.PENDING):
        enrollment = Enrollment(
            user_id=user.id,
            course_id=course.id,
            status=status.value,
            proof_artifact_id="receipt-1",
            proof_url="/storage/receipts/receipt-1.png",
        )
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    return _make_enrollment


def identity_of(user) -> SessionIdentity:
    return SessionIdentity(user_id=user.id, role=user.role, is_blocked=user.is_blocked)


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan (scheduler, default admin) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, email, password=DEFAULT_PASSWORD) -> str:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
