"""Curated articles saved by an admin for newsletter assembly."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pymongo import DESCENDING

from .. import store
from ..deps import get_services, http_errors, require_admin
from ..models import ArticleIn, SaveArticlesRequest
from ..news import window_start
from ..services import Services

router = APIRouter(prefix="/articles", tags=["articles"])

DEFAULT_CATEGORY = "General"


def _prepare(article: ArticleIn, category: str) -> Dict[str, Any]:
    """Fields written on first save; owner and URL come from the upsert filter."""
    return {
        "title": article.title,
        "summary": article.summary or article.description or "",
        "source_name": article.source_name,
        "image_url": article.image_url,
        "published_at": store.naive_utc(article.published_at) if article.published_at else None,
        "category": category,
    }


@router.get("")
def list_articles(
    timeframe: Optional[str] = None,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> List[dict]:
    with http_errors("fetching articles"):
        query: Dict[str, Any] = {"saved_by": admin["_id"]}
        since = window_start(timeframe, store.utcnow())
        if since is not None:
            query["created_at"] = {"$gte": since}
        cursor = services.db[store.ARTICLES].find(query).sort("created_at", DESCENDING)
        return store.serialize_many(cursor)


@router.post("", status_code=status.HTTP_201_CREATED)
def save_articles(
    payload: SaveArticlesRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """
    Upsert on (saved_by, original_url): new articles are inserted, ones the
    admin already saved are left untouched and counted as skipped.
    """
    with http_errors("saving articles"):
        categories = admin.get("categories") or []
        category = categories[0] if categories else DEFAULT_CATEGORY
        now = store.utcnow()
        articles = services.db[store.ARTICLES]
        saved = 0
        for article in payload.articles:
            doc = _prepare(article, category)
            result = articles.update_one(
                {"saved_by": admin["_id"], "original_url": article.url},
                {"$setOnInsert": {**doc, "created_at": now}},
                upsert=True,
            )
            if result.upserted_id is not None:
                saved += 1
        skipped = len(payload.articles) - saved

    if saved == 0:
        body = {"message": "Articles processed. All were already saved.", "saved": 0, "skipped": skipped}
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)
    message = f"{saved} new article(s) saved successfully."
    if skipped:
        message += f" {skipped} were already saved."
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": message, "saved": saved, "skipped": skipped},
    )


@router.delete("/{article_id}")
def delete_article(
    article_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("deleting article"):
        oid = store.object_id(article_id, field="article id")
        deleted = services.db[store.ARTICLES].find_one_and_delete(
            {"_id": oid, "saved_by": admin["_id"]}
        )
        if not deleted:
            raise LookupError("Article not found or you do not have permission to delete it.")
    return {"message": "Article deleted successfully."}
