"""Password hashing and bearer-session resolution.

Sessions are written by the identity service that issues tokens; this module
only reads them.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from pymongo.database import Database

from . import store
from .models import UserStatus, UserType

ADMIN_TYPES = (UserType.ADMIN.value, UserType.SUPERADMIN.value)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def temporary_password() -> str:
    """Random 16-hex-char password handed back once to the admin who created the user."""
    return secrets.token_hex(8)


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise PermissionError("Missing token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise PermissionError("Missing token")
    return token


def resolve_session(db: Database, token: str, *, max_age_days: int) -> Dict[str, Any]:
    """
    Return the user document behind ``token``.

    Raises PermissionError for unknown or expired sessions and LookupError when
    the session points at a user that no longer exists.
    """
    session = db[store.SESSIONS].find_one({"token": token})
    if not session:
        raise PermissionError("Invalid token")
    now = store.utcnow()
    expires_at = session.get("expires_at")
    if expires_at is not None and store.naive_utc(expires_at) <= now:
        raise PermissionError("Session expired")
    created_at = session.get("created_at")
    if created_at is not None and store.naive_utc(created_at) + timedelta(days=max_age_days) <= now:
        raise PermissionError("Session expired")
    user = db[store.USERS].find_one({"_id": store.object_id(session.get("user_id"), field="user_id")})
    if not user:
        raise LookupError("User not found")
    return user


def is_active(user: Dict[str, Any]) -> bool:
    return user.get("status", UserStatus.ACTIVE.value) == UserStatus.ACTIVE.value


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("user_type") in ADMIN_TYPES


def is_superadmin(user: Dict[str, Any]) -> bool:
    return user.get("user_type") == UserType.SUPERADMIN.value


def new_user_document(
    *,
    name: str,
    email: str,
    password_hash: str,
    user_type: UserType,
    categories: Optional[list] = None,
) -> Dict[str, Any]:
    now = store.utcnow()
    return {
        "name": name,
        "email": email.strip(),
        "password": password_hash,
        "user_type": user_type.value,
        "categories": list(categories or []),
        "status": UserStatus.ACTIVE.value,
        "last_login": now,
        "created_at": now,
        "updated_at": now,
    }
