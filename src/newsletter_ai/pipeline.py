"""Newsletter generation and distribution.

generate: prompt -> AI HTML -> PDF -> newsletter record -> notification -> PDF bytes
send:     load -> (email, when configured) -> status + recipient union -> notifications

Steps run strictly in order inside one request. A failing step aborts the
operation and leaves whatever was already written; only notification
fan-out after a send is best effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape
from typing import Any, Dict, List, Optional, Sequence

from bson import Binary, ObjectId

from . import store
from .ai import generate_newsletter_html
from .mailer import Attachment
from .models import GenerateNewsletterRequest, InvalidRequest, NewsletterStatus
from .pdf import PDF_CONTENT_TYPE, pdf_filename
from .services import Services

logger = logging.getLogger(__name__)

GENERATED_ACTION_URL = "/dashboard?tab=generated-newsletters"


@dataclass
class GeneratedNewsletter:
    newsletter_id: ObjectId
    title: str
    pdf: bytes
    content_type: str = PDF_CONTENT_TYPE

    @property
    def filename(self) -> str:
        return pdf_filename(self.title)


@dataclass
class SendResult:
    message: str
    recipients: int
    emailed: bool
    notified: int


def _article_ids(request: GenerateNewsletterRequest) -> List[ObjectId]:
    ids: List[ObjectId] = []
    for article in request.articles:
        if article.id and ObjectId.is_valid(article.id):
            ids.append(ObjectId(article.id))
    return ids


def create_notifications(
    services: Services,
    user_ids: Sequence[ObjectId],
    newsletter_id: ObjectId,
    message: str,
    *,
    action_url: Optional[str] = None,
) -> int:
    """Insert one unread notification per user; returns how many were written."""
    if not user_ids:
        return 0
    now = store.utcnow()
    docs = []
    for user_id in user_ids:
        doc: Dict[str, Any] = {
            "user": user_id,
            "newsletter": newsletter_id,
            "message": message,
            "is_read": False,
            "created_at": now,
        }
        if action_url:
            doc["action_url"] = action_url
        docs.append(doc)
    result = services.db[store.NOTIFICATIONS].insert_many(docs, ordered=False)
    return len(result.inserted_ids)


def _notify_best_effort(
    services: Services, user_ids: Sequence[ObjectId], newsletter_id: ObjectId, message: str
) -> int:
    try:
        return create_notifications(services, user_ids, newsletter_id, message)
    except Exception:
        logger.exception(
            "Failed to create notifications for newsletter %s; delivery already succeeded.",
            newsletter_id,
        )
        return 0


def generate_and_save(
    services: Services, admin: Dict[str, Any], request: GenerateNewsletterRequest
) -> GeneratedNewsletter:
    """Run the generate pipeline for ``admin`` and return the stored PDF."""
    logger.info("Generating newsletter %r (%d articles)", request.title, len(request.articles))

    html = generate_newsletter_html(
        request.articles, request.title, services.ai_client, services.settings
    )
    logger.info("Received %d chars of newsletter HTML", len(html))

    pdf = services.render_pdf(html)

    now = store.utcnow()
    doc = {
        "title": request.title,
        "category": request.category,
        "status": NewsletterStatus.NOT_SENT.value,
        "articles": _article_ids(request),
        "recipients": [],
        "pdf_content": {"data": Binary(pdf), "content_type": PDF_CONTENT_TYPE},
        "created_at": now,
        "updated_at": now,
    }
    newsletter_id = services.db[store.NEWSLETTERS].insert_one(doc).inserted_id
    logger.info("Saved newsletter %s", newsletter_id)

    create_notifications(
        services,
        [admin["_id"]],
        newsletter_id,
        f'New newsletter "{request.title}" generated. '
        'Check it out in "Newsletter History" to share and view.',
        action_url=GENERATED_ACTION_URL,
    )
    return GeneratedNewsletter(newsletter_id=newsletter_id, title=request.title, pdf=pdf)


def load_pdf(services: Services, newsletter_id: ObjectId) -> GeneratedNewsletter:
    """Return the stored PDF bytes for a newsletter; LookupError when absent."""
    doc = services.db[store.NEWSLETTERS].find_one({"_id": newsletter_id})
    content = (doc or {}).get("pdf_content") or {}
    if not doc or not content.get("data"):
        raise LookupError("PDF not found.")
    return GeneratedNewsletter(
        newsletter_id=newsletter_id,
        title=doc["title"],
        pdf=bytes(content["data"]),
        content_type=content.get("content_type") or PDF_CONTENT_TYPE,
    )


def _attachment(newsletter: Dict[str, Any]) -> Attachment:
    content = newsletter.get("pdf_content") or {}
    if not content.get("data"):
        raise LookupError("Newsletter has no PDF content.")
    return Attachment(
        filename=pdf_filename(newsletter["title"]),
        content=bytes(content["data"]),
        content_type=content.get("content_type") or PDF_CONTENT_TYPE,
    )


def send_newsletter(
    services: Services, newsletter_id: ObjectId, recipient_ids: Sequence[ObjectId]
) -> SendResult:
    """
    Email the newsletter to the recipients and record the delivery.

    The email (when configured) and the status/recipient update must succeed;
    notifications afterwards are advisory and never fail the send.
    """
    if not recipient_ids:
        raise InvalidRequest("No recipients selected.")
    newsletters = services.db[store.NEWSLETTERS]
    newsletter = newsletters.find_one({"_id": newsletter_id})
    if not newsletter:
        raise LookupError("Newsletter not found.")

    emailed = False
    if services.mailer.configured:
        users = services.db[store.USERS].find({"_id": {"$in": list(recipient_ids)}}, {"email": 1})
        addresses = [u["email"] for u in users if u.get("email")]
        if addresses:
            title = newsletter["title"]
            services.mailer.send(
                addresses,
                f"Your Newsletter: {title}",
                f"<p>A new newsletter, <strong>{escape(title)}</strong>, is now available. "
                "Please find it attached.</p>",
                [_attachment(newsletter)],
            )
            emailed = True
    else:
        logger.warning("Email not configured; recording delivery of %s without sending.", newsletter_id)

    newsletters.update_one(
        {"_id": newsletter_id},
        {
            "$set": {"status": NewsletterStatus.SENT.value, "updated_at": store.utcnow()},
            "$addToSet": {"recipients": {"$each": list(recipient_ids)}},
        },
    )

    notified = _notify_best_effort(
        services,
        recipient_ids,
        newsletter_id,
        f'You received the "{newsletter["title"]}" newsletter.',
    )
    return SendResult(
        message=f"Newsletter successfully sent to {len(recipient_ids)} user(s).",
        recipients=len(recipient_ids),
        emailed=emailed,
        notified=notified,
    )


def send_to_self(
    services: Services, user: Dict[str, Any], newsletter_id: ObjectId
) -> SendResult:
    """Email one stored newsletter to the caller and add them to its recipients."""
    if not services.mailer.configured:
        raise RuntimeError("Email service is not configured on the server.")
    newsletters = services.db[store.NEWSLETTERS]
    newsletter = newsletters.find_one({"_id": newsletter_id})
    if not newsletter:
        raise LookupError("Newsletter or its PDF content not found.")
    attachment = _attachment(newsletter)

    title = newsletter["title"]
    services.mailer.send(
        [user["email"]],
        f"Your Requested Newsletter: {title}",
        f"<p>Hi {escape(user.get('name') or '')},</p>"
        f"<p>As requested, the newsletter \"<strong>{escape(title)}</strong>\" "
        "is attached to this email.</p>",
        [attachment],
    )
    newsletters.update_one(
        {"_id": newsletter_id},
        {
            "$addToSet": {"recipients": user["_id"]},
            "$set": {"updated_at": store.utcnow()},
        },
    )
    notified = _notify_best_effort(
        services, [user["_id"]], newsletter_id, f'You received the "{title}" newsletter.'
    )
    return SendResult(
        message=f"Newsletter successfully sent to {user['email']}.",
        recipients=1,
        emailed=True,
        notified=notified,
    )
