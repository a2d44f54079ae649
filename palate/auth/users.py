from __future__ import annotations

import secrets
import threading
import time
import uuid
from typing import Any

import bcrypt

from ..errors import ConflictError, NotFoundError
from .config import DEFAULT_AUTH_CONFIG, AuthConfig

_users: dict[str, dict[str, Any]] = {}
_ids_by_username: dict[str, str] = {}
_lock = threading.Lock()


# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode()[:_BCRYPT_MAX_BYTES], hashed.encode())


def _default_preferences() -> dict[str, Any]:
    return {
        "budget": "any",
        "allergies": [],
        "dietary_preferences": [],
        "disliked_cuisines": [],
    }


def _public(record: dict[str, Any]) -> dict[str, Any]:
    """Identity dict handed to request handlers (never includes the hash)."""
    return {
        "user_id": record["user_id"],
        "username": record["username"],
        "is_guest": record["is_guest"],
    }


def _insert(username: str, password_hash: str | None, is_guest: bool) -> dict[str, Any]:
    record = {
        "user_id": uuid.uuid4().hex,
        "username": username,
        "password_hash": password_hash,
        "is_guest": is_guest,
        "preferences": _default_preferences(),
        "created_at": time.time(),
    }
    _users[record["user_id"]] = record
    _ids_by_username[username.lower()] = record["user_id"]
    return record


def register(username: str, password: str) -> dict[str, Any]:
    """Create a password account. Raises ``ConflictError`` if the name is taken."""
    password_hash = _hash_password(password)
    with _lock:
        if username.lower() in _ids_by_username:
            raise ConflictError("Username is already taken")
        record = _insert(username, password_hash, is_guest=False)
    return _public(record)


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns the public identity or ``None``."""
    user_id = _ids_by_username.get(username.lower())
    record = _users.get(user_id) if user_id else None
    if record and record["password_hash"] and _verify_password(password, record["password_hash"]):
        return _public(record)
    return None


def create_guest(name: str | None = None, config: AuthConfig = DEFAULT_AUTH_CONFIG) -> dict[str, Any]:
    """Create an ephemeral account with no credential."""
    with _lock:
        username = (name or "").strip()
        if not username or username.lower() in _ids_by_username:
            username = f"{config.guest_prefix}-{secrets.token_hex(3)}"
        record = _insert(username, None, is_guest=True)
    return _public(record)


def get_user(user_id: str) -> dict[str, Any] | None:
    record = _users.get(user_id)
    return _public(record) if record else None


def get_preferences(user_id: str) -> dict[str, Any]:
    record = _users.get(user_id)
    if not record:
        raise NotFoundError("User not found")
    return record["preferences"]


def save_preferences(user_id: str, preferences: dict[str, Any]) -> dict[str, Any]:
    with _lock:
        record = _users.get(user_id)
        if not record:
            raise NotFoundError("User not found")
        record["preferences"] = {**_default_preferences(), **preferences}
        return record["preferences"]


def clear_users() -> None:
    with _lock:
        _users.clear()
        _ids_by_username.clear()
