"""Process-wide collaborators, built once from Settings and shared by every request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pymongo.database import Database

from . import store
from .ai import client_from_settings
from .config import Settings
from .mailer import SmtpMailer
from .news import NewsClient
from .pdf import PdfRenderer, renderer_from_settings


@dataclass
class Services:
    settings: Settings
    db: Database
    ai_client: Any
    mailer: Any
    render_pdf: PdfRenderer
    news: NewsClient


def build_services(
    settings: Settings,
    *,
    db: Optional[Database] = None,
    ai_client: Any = None,
    mailer: Any = None,
    render_pdf: Optional[PdfRenderer] = None,
    news: Optional[NewsClient] = None,
) -> Services:
    """Fill in any collaborator not supplied by the caller from ``settings``."""
    return Services(
        settings=settings,
        db=db if db is not None else store.connect(settings),
        ai_client=ai_client if ai_client is not None else client_from_settings(settings),
        mailer=mailer if mailer is not None else SmtpMailer(settings),
        render_pdf=render_pdf or renderer_from_settings(settings),
        news=news or NewsClient(settings),
    )
