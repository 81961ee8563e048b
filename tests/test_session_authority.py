from datetime import timedelta

import pytest

from lms.core.enum import UserRole
from lms.core.exceptions import AccountBlocked, NotFound, SessionSuperseded, Unauthenticated
from lms.core.security import jwt_manager
from lms.models import User
from lms.services.session import SessionTokenAuthority


def test_second_issue_supersedes_first(db, make_user):
    user = make_user()
    sessions = SessionTokenAuthority(db)

    first = sessions.issue(user.id)
    second = sessions.issue(user.id)

    assert first != second
    with pytest.raises(SessionSuperseded):
        sessions.validate(first)

    identity = sessions.validate(second)
    assert identity.user_id == user.id
    assert identity.role == UserRole.STUDENT
    assert identity.is_blocked is False


def test_issue_unknown_user(db):
    with pytest.raises(NotFound):
        SessionTokenAuthority(db).issue(999)


def test_issue_records_last_login(db, make_user):
    user = make_user()
    SessionTokenAuthority(db).issue(user.id)

    db.expire_all()
    stored = db.get(User, user.id)
    assert stored.last_login is not None
    assert stored.current_session_token


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_validate_rejects_missing_or_malformed(db, token):
    with pytest.raises(Unauthenticated):
        SessionTokenAuthority(db).validate(token)


def test_validate_rejects_expired_token(db, make_user):
    user = make_user()
    token, _ = jwt_manager.create_session_token(user, custom_expiration=timedelta(seconds=-10))
    db.query(User).filter(User.id == user.id).update({User.current_session_token: token})
    db.commit()

    with pytest.raises(Unauthenticated):
        SessionTokenAuthority(db).validate(token)


def test_validate_rejects_deleted_account(db, make_user):
    user = make_user()
    token = SessionTokenAuthority(db).issue(user.id)
    db.delete(user)
    db.commit()

    with pytest.raises(Unauthenticated):
        SessionTokenAuthority(db).validate(token)


def test_validate_blocked_account(db, make_user):
    user = make_user()
    sessions = SessionTokenAuthority(db)
    token = sessions.issue(user.id)

    db.query(User).filter(User.id == user.id).update({User.is_blocked: True})
    db.commit()

    with pytest.raises(AccountBlocked):
        sessions.validate(token)


def test_validate_returns_current_role(db, make_user):
    user = make_user()
    sessions = SessionTokenAuthority(db)
    token = sessions.issue(user.id)

    # Role changes take effect without a new login
    db.query(User).filter(User.id == user.id).update({User.role: UserRole.INSTRUCTOR.value})
    db.commit()

    assert sessions.validate(token).role == UserRole.INSTRUCTOR


def test_revoke_is_idempotent(db, make_user):
    user = make_user()
    sessions = SessionTokenAuthority(db)
    token = sessions.issue(user.id)

    assert sessions.revoke(token) is True
    assert sessions.revoke(token) is False
    assert sessions.revoke(None) is False

    with pytest.raises(SessionSuperseded):
        sessions.validate(token)


def test_revoke_old_token_keeps_new_session(db, make_user):
    user = make_user()
    sessions = SessionTokenAuthority(db)
    old = sessions.issue(user.id)
    new = sessions.issue(user.id)

    assert sessions.revoke(old) is False
    assert sessions.validate(new).user_id == user.id
