from __future__ import annotations

from typing import Any

from fastapi import Request

from ..errors import AuthenticationRequiredError
from .tokens import verify_token
from .users import get_user


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    # Bare token without a scheme
    return header.strip() or None


def get_current_user(request: Request) -> dict[str, Any] | None:
    """Return the identity behind the bearer token, or ``None``.

    An invalid token is treated the same as no token here.
    """
    token = _bearer_token(request)
    if not token:
        return None
    try:
        claims = verify_token(token)
    except AuthenticationRequiredError:
        return None
    return get_user(claims["user_id"])


def require_user(request: Request) -> dict[str, Any]:
    """Raise 401 if no valid identity is presented."""
    token = _bearer_token(request)
    if not token:
        raise AuthenticationRequiredError()
    claims = verify_token(token)
    user = get_user(claims["user_id"])
    if not user:
        raise AuthenticationRequiredError("User not found")
    return user
