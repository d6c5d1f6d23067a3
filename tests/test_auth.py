from datetime import timedelta

import jwt
import pytest

from shopapi.database import db
from shopapi.models import RefreshToken, User
from shopapi.services import auth
from shopapi.utils import tokens
from shopapi.utils.exceptions import (
    DuplicateUser,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFoundError,
    ValidationError,
)


def test_register_issues_tokens(app, registered):
    claims = tokens.decode(registered.access_token)
    assert claims["sub"] == str(registered.user.id)
    assert claims["name"] == "alice"
    assert claims["email"] == "alice@example.com"
    assert claims["role"] == "User"
    assert claims["firstName"] == "Alice"
    assert claims["lastName"] == "Smith"
    assert claims["iss"] == app.config["JWT_ISSUER"]
    assert claims["aud"] == app.config["JWT_AUDIENCE"]
    assert "password_hash" not in registered.data()["user"]


def test_password_is_hashed(registered):
    with db.transaction() as tx:
        user = User.find(tx, registered.user.id)
    assert user.password_hash != "s3cret!"
    assert user.check_password("s3cret!")
    assert not user.check_password("wrong")


def test_register_duplicate_username_or_email(registered):
    with pytest.raises(DuplicateUser):
        with db.transaction() as tx:
            auth.register(tx, "alice", "other@example.com", "password1")
    with pytest.raises(DuplicateUser):
        with db.transaction() as tx:
            auth.register(tx, "someone", "alice@example.com", "password1")


@pytest.mark.parametrize("username, email, password", [
    ("", "x@example.com", "password1"),
    ("bob", "", "password1"),
    ("bob", "bob@example.com", ""),
    ("bob", "bob@example.com", "short"),
])
def test_register_validation(app, username, email, password):
    with pytest.raises(ValidationError):
        with db.transaction() as tx:
            auth.register(tx, username, email, password)
    with db.transaction() as tx:
        assert User.count(tx) == 0


@pytest.mark.parametrize("identifier", ["alice", "alice@example.com"])
def test_login_with_username_or_email(registered, identifier):
    with db.transaction() as tx:
        result = auth.login(tx, identifier, "s3cret!")
    assert result.user.id == registered.user.id
    assert result.refresh_token != registered.refresh_token


def test_login_wrong_password(registered):
    with pytest.raises(InvalidCredentials):
        with db.transaction() as tx:
            auth.login(tx, "alice", "nope!!")


def test_login_inactive_user(registered):
    with db.transaction() as tx:
        user = User.find(tx, registered.user.id)
        user.active = False
        user.update(tx, "active")
    with pytest.raises(InvalidCredentials):
        with db.transaction() as tx:
            auth.login(tx, "alice", "s3cret!")


def test_refresh_rotates_token(registered):
    with db.transaction() as tx:
        rotated = auth.refresh(tx, registered.refresh_token)
    assert rotated.refresh_token != registered.refresh_token

    with db.transaction() as tx:
        old = RefreshToken.first(tx, token=registered.refresh_token)
    assert old.active is False
    assert old.revoked_at is not None

    with pytest.raises(InvalidOrExpiredToken):
        with db.transaction() as tx:
            auth.refresh(tx, registered.refresh_token)


def test_refresh_unknown_token(app):
    with pytest.raises(InvalidOrExpiredToken):
        with db.transaction() as tx:
            auth.refresh(tx, "not-a-token")


def test_refresh_expired_token(registered):
    with db.transaction() as tx:
        stored = RefreshToken.first(tx, token=registered.refresh_token)
        tx.execute(
            "UPDATE refresh_token_table SET expires = ? WHERE id = ?",
            (stored.created_at - timedelta(seconds=1), stored.id),
            fetch="none",
        )
    with pytest.raises(InvalidOrExpiredToken):
        with db.transaction() as tx:
            auth.refresh(tx, registered.refresh_token)


def test_logout_revokes_and_is_idempotent(registered):
    with db.transaction() as tx:
        assert auth.logout(tx, registered.refresh_token) is True
    with db.transaction() as tx:
        assert auth.logout(tx, registered.refresh_token) is True
        assert auth.logout(tx, "never-issued") is True
    with pytest.raises(InvalidOrExpiredToken):
        with db.transaction() as tx:
            auth.refresh(tx, registered.refresh_token)


def test_expired_access_token_rejected(registered):
    token, _ = tokens.sign({"sub": str(registered.user.id)}, expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidOrExpiredToken):
        auth.decode_access_token(token)


def test_tampered_access_token_rejected(app, registered):
    forged = jwt.encode(
        {"sub": "1", "iss": app.config["JWT_ISSUER"], "aud": app.config["JWT_AUDIENCE"], "exp": 9999999999},
        "some-other-secret-that-is-long-enough",
        algorithm="HS256",
    )
    with pytest.raises(InvalidOrExpiredToken):
        auth.decode_access_token(forged)


def test_wrong_audience_rejected(app, registered):
    token = jwt.encode(
        {"sub": "1", "iss": app.config["JWT_ISSUER"], "aud": "someone-else", "exp": 9999999999},
        app.config["JWT_SECRET"],
        algorithm="HS256",
    )
    with pytest.raises(InvalidOrExpiredToken):
        auth.decode_access_token(token)


def test_get_user(registered):
    with db.transaction() as tx:
        assert auth.get_user(tx, registered.user.id).username == "alice"
    with pytest.raises(NotFoundError):
        with db.transaction() as tx:
            auth.get_user(tx, 999)
