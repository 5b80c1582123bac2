"""Newsletter generation, download, status, deletion and distribution."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from .. import pipeline, store
from ..deps import get_services, http_errors, require_admin
from ..models import (
    GenerateNewsletterRequest,
    NewsletterStatus,
    SendNewsletterRequest,
    StatusUpdateRequest,
    check_transition,
)
from ..services import Services

router = APIRouter(prefix="/newsletters", tags=["newsletters"])

_LIST_PROJECTION = {"pdf_content": 0}


def _pdf_response(result: pipeline.GeneratedNewsletter) -> Response:
    return Response(
        content=result.pdf,
        media_type=result.content_type,
        headers={"Content-Disposition": f'inline; filename="{result.filename}"'},
    )


@router.get("")
def list_newsletters(
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> List[dict]:
    categories = admin.get("categories") or []
    if not categories:
        return []
    with http_errors("fetching newsletters"):
        cursor = services.db[store.NEWSLETTERS].find(
            {"category": {"$in": categories}}, _LIST_PROJECTION
        )
        return store.serialize_many(cursor)


@router.post("/generate-and-save")
def generate_and_save(
    payload: GenerateNewsletterRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Response:
    with http_errors("generating and saving the newsletter PDF"):
        result = pipeline.generate_and_save(services, admin, payload)
    return _pdf_response(result)


@router.get("/{newsletter_id}/download")
def download(
    newsletter_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Response:
    with http_errors("retrieving PDF"):
        result = pipeline.load_pdf(services, store.object_id(newsletter_id, field="newsletter id"))
    return _pdf_response(result)


@router.patch("/{newsletter_id}/status")
def update_status(
    newsletter_id: str,
    payload: StatusUpdateRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict:
    with http_errors("updating status"):
        oid = store.object_id(newsletter_id, field="newsletter id")
        newsletters = services.db[store.NEWSLETTERS]
        doc = newsletters.find_one({"_id": oid}, _LIST_PROJECTION)
        if not doc:
            raise LookupError("Newsletter not found.")
        check_transition(NewsletterStatus(doc["status"]), payload.status)
        newsletters.update_one(
            {"_id": oid},
            {"$set": {"status": payload.status.value, "updated_at": store.utcnow()}},
        )
        return store.serialize(newsletters.find_one({"_id": oid}, _LIST_PROJECTION))


@router.delete("/{newsletter_id}")
def delete_newsletter(
    newsletter_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("deleting newsletter"):
        oid = store.object_id(newsletter_id, field="newsletter id")
        result = services.db[store.NEWSLETTERS].delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise LookupError("Newsletter not found.")
    return {"message": "Newsletter deleted successfully."}


@router.post("/{newsletter_id}/send")
def send(
    newsletter_id: str,
    payload: SendNewsletterRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    with http_errors("sending the newsletter"):
        recipients = store.object_ids(payload.user_ids, field="user id")
        result = pipeline.send_newsletter(
            services, store.object_id(newsletter_id, field="newsletter id"), recipients
        )
    return {"message": result.message, "emailed": result.emailed, "notified": result.notified}
