from __future__ import annotations

from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..errors import AuthenticationRequiredError
from .config import DEFAULT_AUTH_CONFIG, AuthConfig


def _serializer(config: AuthConfig) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(config.secret_key, salt=config.token_salt)


def issue_token(user: dict[str, Any], config: AuthConfig = DEFAULT_AUTH_CONFIG) -> str:
    """Sign ``{user_id, username, is_guest}`` into a bearer token."""
    payload = {
        "user_id": user["user_id"],
        "username": user["username"],
        "is_guest": bool(user.get("is_guest", False)),
    }
    return _serializer(config).dumps(payload)


def verify_token(token: str, config: AuthConfig = DEFAULT_AUTH_CONFIG) -> dict[str, Any]:
    """Return the identity carried by *token*.

    Raises ``AuthenticationRequiredError`` for expired or tampered tokens.
    """
    try:
        return _serializer(config).loads(token, max_age=config.token_max_age)
    except SignatureExpired as exc:
        raise AuthenticationRequiredError("Token expired") from exc
    except BadSignature as exc:
        raise AuthenticationRequiredError("Invalid token") from exc
