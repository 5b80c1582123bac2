"""Self-service endpoints for any signed-in user."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .. import pipeline, store
from ..auth import hash_password, new_user_document
from ..deps import current_user, get_services, http_errors
from ..models import (
    CategoriesUpdate,
    InvalidRequest,
    ProfileUpdate,
    RegisterRequest,
    SendToSelfRequest,
    UserType,
)
from ..services import Services

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, services: Services = Depends(get_services)) -> dict:
    """Self-service sign-up always creates a regular user."""
    with http_errors("registering user"):
        doc = new_user_document(
            name=payload.name,
            email=str(payload.email),
            password_hash=hash_password(payload.password),
            user_type=UserType.USER,
            categories=payload.categories,
        )
        try:
            doc["_id"] = services.db[store.USERS].insert_one(doc).inserted_id
        except DuplicateKeyError as exc:
            raise InvalidRequest("An account with this email already exists.") from exc
        return store.serialize(doc)


@router.get("/me")
def me(user: Dict[str, Any] = Depends(current_user)) -> dict:
    return store.serialize(user)


@router.patch("/me/profile")
def update_profile(
    payload: ProfileUpdate,
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("updating profile"):
        changes: Dict[str, Any] = {}
        if payload.name:
            changes["name"] = payload.name
        if payload.password:
            changes["password"] = hash_password(payload.password)
        changes["updated_at"] = store.utcnow()
        updated = services.db[store.USERS].find_one_and_update(
            {"_id": user["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if not updated:
            raise LookupError("User not found.")
    return {
        "id": str(updated["_id"]),
        "name": updated["name"],
        "email": updated["email"],
        "user_type": updated["user_type"],
    }


@router.patch("/me/categories")
def update_categories(
    payload: CategoriesUpdate,
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("updating categories"):
        updated = services.db[store.USERS].find_one_and_update(
            {"_id": user["_id"]},
            {"$set": {"categories": payload.categories, "updated_at": store.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return store.serialize(updated)


@router.get("/my-newsletters")
def my_newsletters(
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching newsletters"):
        cursor = (
            services.db[store.NEWSLETTERS]
            .find({"recipients": user["_id"]}, {"title": 1, "category": 1, "created_at": 1})
            .sort("created_at", DESCENDING)
        )
        return store.serialize_many(cursor)


@router.post("/send-newsletter-to-self")
def send_newsletter_to_self(
    payload: SendToSelfRequest,
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("emailing the newsletter"):
        oid = store.object_id(payload.newsletter_id, field="newsletter id")
        result = pipeline.send_to_self(services, user, oid)
    return {"message": result.message}
