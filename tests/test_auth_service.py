from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from lms.core.enum import UserRole
from lms.core.exceptions import AccountBlocked, Conflict, NotFound, SessionSuperseded, Unauthenticated
from lms.models import User
from lms.schemas.auth import ChangePasswordRequest, LoginRequest, UserRegistrationRequest
from lms.services.auth import AuthService
from lms.services.session import SessionTokenAuthority
from tests.conftest import DEFAULT_PASSWORD


def registration(email="new@example.com", **overrides):
    data = {
        "user_name": "New User",
        "email": email,
        "password": "Sup3rSecret",
        "confirm_password": "Sup3rSecret",
    }
    data.update(overrides)
    return UserRegistrationRequest(**data)


def test_register_creates_student(db):
    user = AuthService(db).register_user(registration(email="New@Example.com"))

    assert user.role == UserRole.STUDENT.value
    assert user.email == "new@example.com"
    assert user.courses_count == 0
    assert user.hashed_password != "Sup3rSecret"


def test_register_duplicate_email(db):
    service = AuthService(db)
    service.register_user(registration())
    with pytest.raises(Conflict):
        service.register_user(registration(email="NEW@example.com"))


def test_registration_rejects_role_field():
    with pytest.raises(ValidationError):
        registration(role="Admin")


def test_registration_password_mismatch():
    with pytest.raises(ValidationError):
        registration(confirm_password="different1")


def test_login_issues_session(db, make_user):
    user = make_user(email="login@example.com")
    response = AuthService(db).login(
        LoginRequest(email="login@example.com", password=DEFAULT_PASSWORD)
    )

    assert response.user.id == user.id
    assert SessionTokenAuthority(db).validate(response.access_token).user_id == user.id


def test_login_wrong_password(db, make_user):
    make_user(email="login@example.com")
    with pytest.raises(Unauthenticated):
        AuthService(db).login(LoginRequest(email="login@example.com", password="wrong"))


def test_login_unknown_email(db):
    with pytest.raises(Unauthenticated):
        AuthService(db).login(LoginRequest(email="nobody@example.com", password="x"))


def test_login_blocked_account(db, make_user):
    make_user(email="blocked@example.com", blocked=True)
    with pytest.raises(AccountBlocked):
        AuthService(db).login(
            LoginRequest(email="blocked@example.com", password=DEFAULT_PASSWORD)
        )


def test_reset_token_is_single_use(db, make_user):
    user = make_user(email="reset@example.com")
    service = AuthService(db)
    session_token = service.sessions.issue(user.id)

    raw = service.initiate_password_reset("reset@example.com")
    service.reset_password(raw, "BrandNew123")

    with pytest.raises(Unauthenticated):
        service.reset_password(raw, "AnotherOne123")

    # The open session is closed by the reset
    with pytest.raises(SessionSuperseded):
        service.sessions.validate(session_token)

    login = service.login(LoginRequest(email="reset@example.com", password="BrandNew123"))
    assert login.user.id == user.id


def test_reset_token_stored_as_digest(db, make_user):
    user = make_user(email="reset@example.com")
    raw = AuthService(db).initiate_password_reset("reset@example.com")

    db.expire_all()
    stored = db.get(User, user.id).reset_token
    assert stored and stored != raw


def test_reset_token_expires(db, make_user):
    user = make_user(email="reset@example.com")
    service = AuthService(db)
    raw = service.initiate_password_reset("reset@example.com")

    db.query(User).filter(User.id == user.id).update(
        {User.reset_token_expires_at: datetime.now(timezone.utc) - timedelta(minutes=1)}
    )
    db.commit()

    with pytest.raises(Unauthenticated):
        service.reset_password(raw, "BrandNew123")


def test_reset_unknown_email(db):
    with pytest.raises(NotFound):
        AuthService(db).initiate_password_reset("nobody@example.com")


def test_change_password(db, make_user):
    user = make_user(email="change@example.com")
    service = AuthService(db)

    with pytest.raises(Unauthenticated):
        service.change_password(
            user.id,
            ChangePasswordRequest(current_password="wrong", new_password="BrandNew123"),
        )

    service.change_password(
        user.id,
        ChangePasswordRequest(current_password=DEFAULT_PASSWORD, new_password="BrandNew123"),
    )
    assert service.login(
        LoginRequest(email="change@example.com", password="BrandNew123")
    ).user.id == user.id
