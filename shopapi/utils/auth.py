from functools import wraps
from typing import Any, Callable

from flask import g, request

from shopapi.utils import tokens
from shopapi.utils.exceptions import AuthorizationError, InvalidOrExpiredToken


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidOrExpiredToken("Missing bearer token")
    return token.strip()


def token_required(f: Callable[..., Any]) -> Callable[..., Any]:
    """Validate the access token; claims land on g.claims."""
    @wraps(f)
    def decorated_view(*args: Any, **kwargs: Any) -> Any:
        g.claims = tokens.decode(bearer_token())
        g.user_id = int(g.claims["sub"])
        return f(*args, **kwargs)
    return decorated_view


def role_required(role: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(f)
        @token_required
        def decorated_view(*args: Any, **kwargs: Any) -> Any:
            if g.claims.get("role") != role:
                raise AuthorizationError(required_role=role)
            return f(*args, **kwargs)
        return decorated_view
    return decorator
