"""
Registration, login and token lifecycle.

Access tokens are stateless JWTs; refresh tokens are random values stored in
refresh_token_table and rotated on every use.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from flask import current_app

from shopapi.database import Transaction
from shopapi.models import RefreshToken, User
from shopapi.utils import tokens
from shopapi.utils.exceptions import (
    DuplicateUser,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFoundError,
    ValidationError,
)
from shopapi.utils.helpers import utcnow
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
DEFAULT_ROLE = "User"


@dataclass
class AuthResult:
    access_token: str
    refresh_token: str
    expires: datetime
    user: User

    def data(self) -> Dict[str, Any]:
        return {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires": self.expires.isoformat(),
            "user": self.user.data(),
        }


def _claims(user: User) -> Dict[str, Any]:
    return {
        "sub": str(user.id),
        "name": user.username,
        "email": user.email,
        "role": user.role,
        "firstName": user.first_name or "",
        "lastName": user.last_name or "",
    }


def issue_tokens(tx: Transaction, user: User) -> AuthResult:
    """Sign an access token and store a fresh, active refresh token."""
    access_token, expires = tokens.sign(_claims(user))
    refresh = RefreshToken.new(
        tx,
        token=tokens.new_refresh_token(),
        user_id=user.id,
        expires=utcnow() + current_app.config["REFRESH_TOKEN_LIFETIME"],
        active=True,
    )
    return AuthResult(access_token, refresh.token, expires, user)


def register(
    tx: Transaction,
    username: str,
    email: str,
    password: str,
    first_name: str = "",
    last_name: str = "",
) -> AuthResult:
    username = (username or "").strip()
    email = (email or "").strip()
    missing = [name for name, value in (("username", username), ("email", email), ("password", password)) if not value]
    if missing:
        raise ValidationError("Missing required fields", fields=missing)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    existing = User.select(tx, "username = ? OR email = ?", (username, email))
    if existing:
        log.info("Registration refused, username or email taken: %s / %s", username, email)
        raise DuplicateUser(username=username, email=email)

    user = User.new(
        tx,
        username=username,
        email=email,
        password_hash=User.hash_password(password),
        first_name=first_name or "",
        last_name=last_name or "",
        role=DEFAULT_ROLE,
        active=True,
    )
    log.info("User %s registered (id=%s)", user.username, user.id)
    return issue_tokens(tx, user)


def login(tx: Transaction, username_or_email: str, password: str) -> AuthResult:
    candidates = User.select(
        tx,
        "(username = ? OR email = ?) AND active = ?",
        (username_or_email, username_or_email, True),
    )
    user = candidates[0] if candidates else None
    if user is None or not password or not user.check_password(password):
        log.warning("Failed login for %s", username_or_email)
        raise InvalidCredentials()

    user.touch(tx)
    log.info("User %s logged in", user.username)
    return issue_tokens(tx, user)


def refresh(tx: Transaction, token: str) -> AuthResult:
    """Rotate: the presented token is revoked and a new pair is issued."""
    stored = RefreshToken.first(tx, token=token) if token else None
    if stored is None or not stored.active or stored.is_expired():
        log.warning("Refresh refused for unknown, revoked or expired token")
        raise InvalidOrExpiredToken()

    user = User.find(tx, stored.user_id)
    if user is None or not user.active:
        raise InvalidOrExpiredToken()

    if not stored.revoke(tx):
        log.warning("Refresh token %s already used by a concurrent request", stored.id)
        raise InvalidOrExpiredToken()
    log.info("Refresh token rotated for user %s", user.username)
    return issue_tokens(tx, user)


def logout(tx: Transaction, token: str) -> bool:
    """Revoke the refresh token. Unknown or already revoked tokens are fine."""
    stored = RefreshToken.first(tx, token=token) if token else None
    if stored is not None and stored.revoke(tx):
        log.info("User %s logged out", stored.user_id)
    return True


def decode_access_token(token: str) -> Dict[str, Any]:
    return tokens.decode(token)


def get_user(tx: Transaction, user_id: int) -> User:
    user = User.find(tx, user_id)
    if user is None or not user.active:
        raise NotFoundError("User not found", user_id=user_id)
    return user
