"""In-app notifications for the signed-in user."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pymongo import DESCENDING

from .. import store
from ..deps import current_user, get_services, http_errors
from ..services import Services

router = APIRouter(prefix="/notifications", tags=["notifications"])

RECENT_LIMIT = 10


@router.get("")
def recent_notifications(
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> List[dict]:
    """The most recent notifications, read and unread alike."""
    with http_errors("fetching notifications"):
        cursor = (
            services.db[store.NOTIFICATIONS]
            .find({"user": user["_id"]})
            .sort("created_at", DESCENDING)
            .limit(RECENT_LIMIT)
        )
        return store.serialize_many(cursor)


@router.post("/mark-as-read")
def mark_as_read(
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    with http_errors("updating notifications"):
        result = services.db[store.NOTIFICATIONS].update_many(
            {"user": user["_id"], "is_read": False}, {"$set": {"is_read": True}}
        )
    return {"message": "Notifications marked as read.", "updated": result.modified_count}
