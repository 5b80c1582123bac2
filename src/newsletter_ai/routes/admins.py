"""Admin management.

Admins manage subscribers of the categories they are assigned to; the
superadmin manages admins, regular users, and their subscriptions.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .. import store
from ..auth import ADMIN_TYPES, hash_password, new_user_document, temporary_password
from ..deps import get_services, http_errors, require_admin, require_superadmin
from ..models import (
    AddUserRequest,
    AdminCreate,
    AdminUpdate,
    CategoriesUpdate,
    CategoryMembers,
    CategoryMembership,
    InvalidRequest,
    UserType,
)
from ..services import Services

router = APIRouter(prefix="/admins", tags=["admins"])

_PUBLIC_USER_FIELDS = {"name": 1, "email": 1, "categories": 1}


def _insert_user(services: Services, doc: Dict[str, Any]) -> Dict[str, Any]:
    try:
        doc["_id"] = services.db[store.USERS].insert_one(doc).inserted_id
    except DuplicateKeyError as exc:
        raise InvalidRequest("A user with this email already exists.") from exc
    return doc


def _create_regular_user(services: Services, payload: AddUserRequest) -> Dict[str, Any]:
    if not payload.name.strip() or not payload.email.strip():
        raise InvalidRequest("Name and email are required.")
    password = temporary_password()
    doc = _insert_user(
        services,
        new_user_document(
            name=payload.name.strip(),
            email=payload.email,
            password_hash=hash_password(password),
            user_type=UserType.USER,
            categories=payload.categories,
        ),
    )
    return {
        "message": "User created successfully!",
        "user": {"id": str(doc["_id"]), "name": doc["name"], "email": doc["email"]},
        "password": password,
    }


def _require_regular_user(services: Services, user_id: str) -> Dict[str, Any]:
    oid = store.object_id(user_id, field="user id")
    target = services.db[store.USERS].find_one({"_id": oid})
    if not target:
        raise LookupError("User not found.")
    if target.get("user_type") != UserType.USER.value:
        raise InvalidRequest("This operation is only available for regular users.")
    return target


# --- Admin-scoped ------------------------------------------------------------


@router.get("/my-categories-stats")
def my_category_stats(
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching category stats"):
        stats = []
        for name in admin.get("categories") or []:
            stats.append(
                {
                    "name": name,
                    "subscriber_count": services.db[store.USERS].count_documents(
                        {"user_type": UserType.USER.value, "categories": name}
                    ),
                    "newsletter_count": services.db[store.NEWSLETTERS].count_documents(
                        {"category": name}
                    ),
                }
            )
        return stats


@router.get("/my-subscribers")
def my_subscribers(
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> List[dict]:
    categories = admin.get("categories") or []
    if not categories:
        return []
    with http_errors("fetching subscribers"):
        cursor = services.db[store.USERS].find(
            {"user_type": UserType.USER.value, "categories": {"$in": categories}},
            _PUBLIC_USER_FIELDS,
        )
        return store.serialize_many(cursor)


@router.get("/all-users")
def all_users(
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> List[dict]:
    """Every regular user, for the share dialog."""
    with http_errors("fetching all users"):
        cursor = (
            services.db[store.USERS]
            .find({"user_type": UserType.USER.value}, _PUBLIC_USER_FIELDS)
            .sort("name", ASCENDING)
        )
        return store.serialize_many(cursor)


@router.post("/add-user", status_code=status.HTTP_201_CREATED)
def add_user(
    payload: AddUserRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("adding user"):
        return _create_regular_user(services, payload)


@router.patch("/remove-user-from-category")
def remove_user_from_category(
    payload: CategoryMembership,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("removing user from category"):
        if not payload.user_id or not payload.category_name:
            raise InvalidRequest("User ID and Category Name are required.")
        if payload.category_name not in (admin.get("categories") or []):
            raise PermissionError("You are not authorized to manage this category.")
        updated = services.db[store.USERS].find_one_and_update(
            {"_id": store.object_id(payload.user_id, field="user id")},
            {"$pull": {"categories": payload.category_name}},
        )
        if not updated:
            raise LookupError("User not found.")
    return {
        "message": f"User was successfully removed from the {payload.category_name} category."
    }


@router.patch("/add-users-to-category")
def add_users_to_category(
    payload: CategoryMembers,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("adding users to category"):
        if not payload.user_ids:
            raise InvalidRequest("An array of user IDs is required.")
        if not payload.category:
            raise InvalidRequest("A category must be specified to add users to.")
        if payload.category not in (admin.get("categories") or []):
            raise PermissionError("You are not authorized to add users to this category.")
        ids = store.object_ids(payload.user_ids, field="user id")
        result = services.db[store.USERS].update_many(
            {"_id": {"$in": ids}}, {"$addToSet": {"categories": payload.category}}
        )
        if result.modified_count == 0 and result.matched_count > 0:
            return {
                "message": f"Selected users were already in the {payload.category} category. "
                "No changes made."
            }
        if result.modified_count == 0:
            raise LookupError("None of the selected users could be found.")
    return {
        "message": f"{result.modified_count} user(s) successfully added to the "
        f"{payload.category} category."
    }


# --- Superadmin --------------------------------------------------------------


@router.get("")
def list_admins(
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching admins"):
        cursor = services.db[store.USERS].find({"user_type": {"$in": list(ADMIN_TYPES)}})
        return store.serialize_many(cursor)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: AdminCreate,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("adding admin"):
        if not payload.name or not payload.email or not payload.password:
            raise InvalidRequest("Please provide all required fields.")
        doc = _insert_user(
            services,
            new_user_document(
                name=payload.name,
                email=payload.email,
                password_hash=hash_password(payload.password),
                user_type=UserType.ADMIN,
                categories=payload.categories,
            ),
        )
        if payload.categories:
            services.db[store.CATEGORIES].update_many(
                {"name": {"$in": payload.categories}}, {"$addToSet": {"admins": doc["_id"]}}
            )
        return store.serialize(doc)


@router.patch("/{admin_id}")
def update_admin(
    admin_id: str,
    payload: AdminUpdate,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> dict:
    """Replace an admin's profile and reconcile category ``admins`` lists."""
    with http_errors("updating admin"):
        oid = store.object_id(admin_id, field="admin id")
        users = services.db[store.USERS]
        current = users.find_one({"_id": oid})
        if not current:
            raise LookupError("Admin not found.")
        old_categories = current.get("categories") or []
        new_categories = payload.categories

        changes: Dict[str, Any] = {
            "name": payload.name,
            "email": str(payload.email),
            "status": payload.status.value,
            "categories": new_categories,
            "updated_at": store.utcnow(),
        }
        if payload.password:
            changes["password"] = hash_password(payload.password)
        try:
            updated = users.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as exc:
            raise InvalidRequest("An account with this email already exists.") from exc

        added = [c for c in new_categories if c not in old_categories]
        removed = [c for c in old_categories if c not in new_categories]
        categories = services.db[store.CATEGORIES]
        if added:
            categories.update_many({"name": {"$in": added}}, {"$addToSet": {"admins": oid}})
        if removed:
            categories.update_many({"name": {"$in": removed}}, {"$pull": {"admins": oid}})
        return store.serialize(updated)


@router.delete("/{admin_id}")
def delete_admin(
    admin_id: str,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("deleting admin"):
        oid = store.object_id(admin_id, field="admin id")
        target = services.db[store.USERS].find_one({"_id": oid})
        if not target:
            raise LookupError("Admin not found.")
        if target.get("user_type") == UserType.SUPERADMIN.value:
            raise PermissionError("Super Admins cannot be deleted.")
        services.db[store.CATEGORIES].update_many({"admins": oid}, {"$pull": {"admins": oid}})
        services.db[store.USERS].delete_one({"_id": oid})
    return {"message": "Admin deleted successfully."}


@router.get("/all-regular-users")
def all_regular_users(
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching users"):
        cursor = (
            services.db[store.USERS]
            .find(
                {"user_type": UserType.USER.value},
                {"name": 1, "email": 1, "status": 1, "categories": 1, "created_at": 1},
            )
            .sort("created_at", DESCENDING)
        )
        return store.serialize_many(cursor)


@router.delete("/user/{user_id}")
def delete_regular_user(
    user_id: str,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("deleting user"):
        target = _require_regular_user(services, user_id)
        services.db[store.USERS].delete_one({"_id": target["_id"]})
    return {"message": "User deleted successfully."}


@router.post("/super-add-user", status_code=status.HTTP_201_CREATED)
def super_add_user(
    payload: AddUserRequest,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("adding user"):
        return _create_regular_user(services, payload)


@router.patch("/user/{user_id}/subscriptions")
def update_subscriptions(
    user_id: str,
    payload: CategoriesUpdate,
    requester: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("updating user subscriptions"):
        target = _require_regular_user(services, user_id)
        updated = services.db[store.USERS].find_one_and_update(
            {"_id": target["_id"]},
            {"$set": {"categories": payload.categories, "updated_at": store.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return store.serialize(updated)
