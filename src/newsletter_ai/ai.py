"""OpenAI-backed text steps: article summaries and newsletter HTML.

Both helpers take an already-built client so callers (and tests) decide how
the client is constructed.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from openai import OpenAI

from .config import Settings
from .models import InvalidRequest, NewsletterArticle

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*\n")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def build_client(api_key: Optional[str] = None) -> OpenAI:
    """Create an OpenAI client; separated for easier testing."""
    return OpenAI(api_key=api_key)


def client_from_settings(settings: Settings) -> OpenAI | None:
    """Return a client when an API key is configured, otherwise None."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; summaries and newsletter generation are disabled.")
        return None
    return build_client(settings.openai_api_key)


def _require_client(client: OpenAI | None) -> OpenAI:
    if client is None:
        raise RuntimeError(
            "OPENAI_API_KEY is required. Set it in the environment or .env file."
        )
    return client


def _load_prompt_file(filename: str) -> str:
    path = PROMPTS_DIR / filename
    return path.read_text(encoding="utf-8")


def _response_text_or_raise(response: object, *, step: str) -> str:
    """Extract response text or raise a clear error when output is missing."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text

    status = getattr(response, "status", None)
    if status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details else None
        hint = ""
        if reason == "max_output_tokens":
            hint = " Increase MAX_TOKENS or send fewer articles."
        raise RuntimeError(f"{step} response incomplete (reason={reason}).{hint}")

    err = getattr(response, "error", None)
    if err:
        raise RuntimeError(f"{step} response error: {err}")

    raise RuntimeError(f"{step} response missing output text.")


def _request_kwargs(settings: Settings, model: str, system: str, user: str) -> dict:
    kwargs = {
        "model": model,
        "input": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": settings.temperature,
    }
    if settings.max_tokens and settings.max_tokens > 0:
        kwargs["max_output_tokens"] = settings.max_tokens
    return kwargs


def summarize_text(text: str, client: OpenAI | None, settings: Settings) -> str:
    """Return a newsletter-style prose summary of ``text``."""
    if not text or not text.strip():
        raise InvalidRequest("No text provided to summarize.")
    active = _require_client(client)
    prompt_text = _load_prompt_file("summarize.md")
    response = active.responses.create(
        **_request_kwargs(settings, settings.summarizer_model, prompt_text, text.strip())
    )
    return _response_text_or_raise(response, step="Summarizer").strip()


def build_newsletter_prompt(
    articles: Sequence[NewsletterArticle], title: str, *, today: Optional[date] = None
) -> str:
    """Embed the article list as JSON into the layout instructions."""
    day = today or date.today()
    edition_date = f"{day:%b} {day.day}, {day.year}"
    payload: List[dict] = [
        {
            "title": a.title,
            "summary": a.summary,
            "source": a.source_name,
            "category": a.category,
            "original_url": a.original_url,
            "image_url": a.image_url,
        }
        for a in articles
    ]
    template = _load_prompt_file("newsletter_html.md")
    return template.format(
        title=title,
        edition_date=edition_date,
        articles_json=json.dumps(payload, indent=2, ensure_ascii=False),
    )


def strip_code_fences(text: str) -> str:
    """Drop a leading ```html fence and a trailing ``` fence if the model added them."""
    cleaned = _FENCE_OPEN.sub("", text, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def generate_newsletter_html(
    articles: Sequence[NewsletterArticle],
    title: str,
    client: OpenAI | None,
    settings: Settings,
) -> str:
    """Ask the model for inline-styled newsletter HTML; reject empty or tiny output."""
    active = _require_client(client)
    prompt = build_newsletter_prompt(articles, title)
    response = active.responses.create(
        **_request_kwargs(
            settings,
            settings.newsletter_model,
            "You write complete HTML documents and nothing else.",
            prompt,
        )
    )
    html = strip_code_fences(_response_text_or_raise(response, step="Newsletter HTML"))
    if len(html) < settings.min_html_length:
        raise RuntimeError("AI returned an empty or invalid HTML response.")
    return html
