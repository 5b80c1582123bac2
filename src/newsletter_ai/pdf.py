"""HTML to PDF rendering through wkhtmltopdf (headless WebKit)."""

from __future__ import annotations

import logging
from typing import Callable

import pdfkit

from .config import Settings

logger = logging.getLogger(__name__)

PdfRenderer = Callable[[str], bytes]

PDF_CONTENT_TYPE = "application/pdf"


def _options(page_size: str) -> dict:
    return {
        "page-size": page_size,
        "encoding": "UTF-8",
        "print-media-type": None,
        "background": None,
        "quiet": None,
    }


def render_pdf(html: str, *, page_size: str = "A4", wkhtmltopdf_path: str | None = None) -> bytes:
    """
    Render ``html`` into a fixed page-size PDF.

    Each call spawns its own wkhtmltopdf process and waits for it to exit;
    nothing is pooled between requests.
    """
    configuration = (
        pdfkit.configuration(wkhtmltopdf=wkhtmltopdf_path) if wkhtmltopdf_path else None
    )
    pdf = pdfkit.from_string(
        html, False, options=_options(page_size), configuration=configuration
    )
    if not pdf:
        raise RuntimeError("wkhtmltopdf produced an empty document.")
    logger.info("Rendered PDF (%d bytes, %s)", len(pdf), page_size)
    return pdf


def renderer_from_settings(settings: Settings) -> PdfRenderer:
    def _render(html: str) -> bytes:
        return render_pdf(
            html,
            page_size=settings.pdf_page_size,
            wkhtmltopdf_path=settings.wkhtmltopdf_path,
        )

    return _render


def pdf_filename(title: str) -> str:
    """Whitespace in the title becomes underscores; the result is ASCII-only for headers."""
    name = "_".join(title.split()).replace('"', "")
    name = name.encode("ascii", "ignore").decode("ascii") or "newsletter"
    return f"{name}.pdf"
