"""External news search and AI summaries for admins."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ..ai import summarize_text
from ..deps import get_services, http_errors, require_admin
from ..models import SummarizeRequest
from ..news import filter_by_window, window_start
from ..services import Services

router = APIRouter(prefix="/news", tags=["news"])


@router.get("")
def fetch_news(
    timeframe: Optional[str] = None,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, list]:
    categories = admin.get("categories") or []
    if not categories:
        return {"articles": []}
    with http_errors("fetching news"):
        since = window_start(timeframe)
    with http_errors("fetching news from the news API"):
        articles = filter_by_window(services.news.search(categories), since)
    return {"articles": [a.model_dump(mode="json") for a in articles]}


@router.post("/summarize")
def summarize(
    payload: SummarizeRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    with http_errors("generating summary"):
        summary = summarize_text(payload.text, services.ai_client, services.settings)
    return {"summary": summary}
