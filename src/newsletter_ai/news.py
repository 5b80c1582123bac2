"""GNews search client and the category keyword routing used to build queries."""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import Settings
from .models import InvalidRequest, NewsArticle

logger = logging.getLogger(__name__)

# Ambiguous category names get a boolean query that keeps results on topic.
CATEGORY_KEYWORDS: Dict[str, str] = {
    "java": "(Java AND (programming OR software OR developer OR oracle OR Jakarta)) NOT island NOT coffee",
    ".net": '(".NET" OR "ASP.NET" OR C#) AND (microsoft OR software OR framework OR developer)',
    "data science": '"Data Science" OR "Machine Learning" OR "Artificial Intelligence" OR Pandas OR NumPy',
    "devops": "DevOps OR CI/CD OR Jenkins OR Docker OR Kubernetes OR Terraform",
    "ci / cd pipelines": '"CI/CD" OR "Continuous Integration" OR "Continuous Deployment" OR Jenkins OR GitLab',
}

TIMEFRAMES = ("day", "week", "month")


def build_query(categories: Sequence[str]) -> str:
    parts = [CATEGORY_KEYWORDS.get(c.strip().lower(), f'"{c.strip()}"') for c in categories if c.strip()]
    return " OR ".join(parts)


def _subtract_month(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(timeframe: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of the ``day`` / ``week`` / ``month`` window ending at ``now``.

    Returns None when no timeframe is given; unknown names raise InvalidRequest.
    """
    if not timeframe:
        return None
    current = now or datetime.now(timezone.utc)
    if timeframe == "day":
        return current - timedelta(days=1)
    if timeframe == "week":
        return current - timedelta(days=7)
    if timeframe == "month":
        return _subtract_month(current)
    raise InvalidRequest(f"timeframe must be one of {', '.join(TIMEFRAMES)}.")


def _parse_published_at(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    txt = str(raw).strip()
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(txt)
    except ValueError:
        logger.debug("Unparseable publishedAt %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_article(raw: Dict[str, Any]) -> NewsArticle:
    """Map one GNews result into the service's article shape."""
    source = raw.get("source") or {}
    return NewsArticle(
        title=raw.get("title") or "",
        description=raw.get("description"),
        content=raw.get("content"),
        url=raw.get("url") or "",
        image_url=raw.get("image"),
        source_name=source.get("name") if isinstance(source, dict) else None,
        author=raw.get("author"),
        published_at=_parse_published_at(raw.get("publishedAt")),
    )


def filter_by_window(articles: Sequence[NewsArticle], since: Optional[datetime]) -> List[NewsArticle]:
    """Keep articles published at or after ``since``; undated articles are dropped."""
    if since is None:
        return list(articles)
    return [a for a in articles if a.published_at is not None and a.published_at >= since]


class NewsClient:
    """Thin GNews v4 wrapper; pass a transport to stub the network in tests."""

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def search(self, categories: Sequence[str]) -> List[NewsArticle]:
        query = build_query(categories)
        if not query:
            return []
        if not self.settings.gnews_api_key:
            raise RuntimeError("GNEWS_API_KEY is required to fetch news.")
        params = {
            "q": query,
            "lang": self.settings.gnews_lang,
            "country": self.settings.gnews_country,
            "max": self.settings.gnews_max_results,
            "in": "title,description",
            "apikey": self.settings.gnews_api_key,
        }
        try:
            with httpx.Client(
                base_url=self.settings.gnews_base_url,
                timeout=self.settings.http_timeout,
                transport=self._transport,
            ) as client:
                response = client.get("/search", params=params)
                response.raise_for_status()
                payload = response.json()
            articles = [normalize_article(item) for item in payload.get("articles", [])]
        except httpx.HTTPError as exc:
            raise RuntimeError(f"GNews request failed: {exc}") from exc
        except (ValueError, TypeError, AttributeError) as exc:
            raise RuntimeError("GNews returned an invalid response.") from exc
        logger.info("GNews returned %d article(s) for %d categories", len(articles), len(categories))
        return articles
