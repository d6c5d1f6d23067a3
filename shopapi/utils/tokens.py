"""
Access-token signing and validation (HS256 JWT) plus refresh-token generation.
Settings come from the Flask config: JWT_SECRET, JWT_ISSUER, JWT_AUDIENCE,
JWT_ALGORITHM, ACCESS_TOKEN_LIFETIME.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from flask import current_app

from shopapi.utils.exceptions import InvalidOrExpiredToken
from .logging import get_logger

log = get_logger(__name__)

REFRESH_TOKEN_BYTES = 32    # 256 bits


def get_secret() -> str:
    secret = current_app.config.get("JWT_SECRET")
    if not secret:
        raise ValueError("No JWT secret configured")
    return secret


def sign(claims: Dict[str, Any], expires_in: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """Sign claims; returns (token, naive UTC expiry)."""
    lifetime = expires_in or current_app.config["ACCESS_TOKEN_LIFETIME"]
    now = datetime.now(timezone.utc)
    expires = now + lifetime
    payload = {
        **claims,
        "iat": now,
        "exp": expires,
        "iss": current_app.config["JWT_ISSUER"],
        "aud": current_app.config["JWT_AUDIENCE"],
    }
    token = jwt.encode(payload, get_secret(), algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"))
    return token, expires.replace(tzinfo=None)


def decode(token: str) -> Dict[str, Any]:
    """Validate signature, issuer, audience and expiry with zero leeway."""
    if not token:
        raise InvalidOrExpiredToken("Missing token")
    try:
        return jwt.decode(
            token,
            get_secret(),
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            audience=current_app.config["JWT_AUDIENCE"],
            issuer=current_app.config["JWT_ISSUER"],
            leeway=0,
            options={"require": ["exp", "iss", "aud", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        log.info("Rejected expired access token")
        raise InvalidOrExpiredToken("Token has expired") from None
    except jwt.InvalidTokenError as e:
        log.warning("Rejected invalid access token: %s", e)
        raise InvalidOrExpiredToken() from None


def new_refresh_token() -> str:
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)
