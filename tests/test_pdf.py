import pytest

from newsletter_ai import pdf
from newsletter_ai.config import Settings


def test_pdf_filename():
    assert pdf.pdf_filename("Java  Weekly Digest") == "Java_Weekly_Digest.pdf"
    assert pdf.pdf_filename('The "Best" Of') == "The_Best_Of.pdf"
    assert pdf.pdf_filename("Café News") == "Caf_News.pdf"
    assert pdf.pdf_filename("日本") == "newsletter.pdf"


def test_render_pdf_passes_page_options(monkeypatch):
    captured = {}

    def fake_from_string(html, output_path, options=None, configuration=None):
        captured.update(html=html, output_path=output_path, options=options, configuration=configuration)
        return b"%PDF-1.4"

    monkeypatch.setattr(pdf.pdfkit, "from_string", fake_from_string)

    result = pdf.renderer_from_settings(Settings(_env_file=None))("<html></html>")

    assert result == b"%PDF-1.4"
    assert captured["output_path"] is False
    assert captured["options"]["page-size"] == "A4"
    assert "print-media-type" in captured["options"]
    # Generated HTML must not be able to pull in files from the server.
    assert "enable-local-file-access" not in captured["options"]
    assert captured["configuration"] is None


def test_render_pdf_rejects_empty_output(monkeypatch):
    monkeypatch.setattr(pdf.pdfkit, "from_string", lambda *a, **kw: b"")
    with pytest.raises(RuntimeError):
        pdf.render_pdf("<html></html>")
