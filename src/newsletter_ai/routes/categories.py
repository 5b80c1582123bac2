"""Category catalogue; creation and removal are superadmin-only."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import DuplicateKeyError

from .. import store
from ..auth import ADMIN_TYPES
from ..deps import current_user, get_services, http_errors, require_superadmin
from ..models import CategoryCreate, InvalidRequest
from ..services import Services

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(
    user: Dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching categories"):
        return store.serialize_many(services.db[store.CATEGORIES].find().sort("name", 1))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    user: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> dict:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name is required.")
    with http_errors("creating category"):
        doc = {"name": name, "admins": [], "created_at": store.utcnow()}
        try:
            doc["_id"] = services.db[store.CATEGORIES].insert_one(doc).inserted_id
        except DuplicateKeyError as exc:
            raise InvalidRequest("A category with this name already exists.") from exc
        return store.serialize(doc)


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    user: Dict[str, Any] = Depends(require_superadmin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    """Remove the category and pull its name from every admin; admins themselves stay."""
    with http_errors("removing category"):
        oid = store.object_id(category_id, field="category id")
        category = services.db[store.CATEGORIES].find_one({"_id": oid})
        if not category:
            raise LookupError("Category not found.")
        services.db[store.USERS].update_many(
            {
                "$or": [
                    {"_id": {"$in": category.get("admins", [])}},
                    {"user_type": {"$in": list(ADMIN_TYPES)}, "categories": category["name"]},
                ]
            },
            {"$pull": {"categories": category["name"]}},
        )
        services.db[store.CATEGORIES].delete_one({"_id": oid})
    return {"message": "Category removed successfully."}
