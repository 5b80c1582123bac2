"""MongoDB access helpers: connection, indexes, id parsing, and JSON-safe documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from .config import Settings
from .models import InvalidRequest

USERS = "users"
CATEGORIES = "categories"
ARTICLES = "articles"
NEWSLETTERS = "newsletters"
NOTIFICATIONS = "notifications"
SESSIONS = "sessions"

# Stored but never returned to API callers.
_HIDDEN_FIELDS = {"password", "pdf_content"}


def connect(settings: Settings) -> Database:
    """Open a client for the configured URI; pymongo connects lazily on first use."""
    client: MongoClient = MongoClient(settings.mongodb_uri)
    return client[settings.mongodb_db]


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index("email", unique=True)
    db[CATEGORIES].create_index("name", unique=True)
    db[ARTICLES].create_index(
        [("saved_by", ASCENDING), ("original_url", ASCENDING)], unique=True
    )
    db[ARTICLES].create_index([("saved_by", ASCENDING), ("created_at", DESCENDING)])
    db[NEWSLETTERS].create_index("category")
    db[NEWSLETTERS].create_index("recipients")
    db[NOTIFICATIONS].create_index([("user", ASCENDING), ("is_read", ASCENDING)])
    db[SESSIONS].create_index("token", unique=True)


def utcnow() -> datetime:
    """Naive UTC, the form pymongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes read back from Mongo are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def object_id(raw: Any, *, field: str = "id") -> ObjectId:
    """Parse a client-supplied id; malformed ids are a validation error."""
    if isinstance(raw, ObjectId):
        return raw
    try:
        return ObjectId(str(raw))
    except (InvalidId, TypeError) as exc:
        raise InvalidRequest(f"Invalid {field}: {raw!r}") from exc


def object_ids(raw_ids: Iterable[Any], *, field: str = "id") -> List[ObjectId]:
    """Parse ids keeping first-seen order and dropping repeats."""
    parsed: List[ObjectId] = []
    for raw in raw_ids:
        oid = object_id(raw, field=field)
        if oid not in parsed:
            parsed.append(oid)
    return parsed


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def serialize(doc: Dict[str, Any] | None) -> Dict[str, Any] | None:
    """
    Convert a stored document into a JSON-safe dict.

    `_id` becomes `id`, ObjectIds and datetimes become strings, and password
    hashes / PDF bytes are dropped.
    """
    if doc is None:
        return None
    out: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in _HIDDEN_FIELDS:
            continue
        out["id" if key == "_id" else key] = _plain(value)
    return out


def serialize_many(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize(doc) for doc in docs]
