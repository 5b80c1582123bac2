import secrets
from datetime import timedelta
from types import SimpleNamespace

import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient

from newsletter_ai import store
from newsletter_ai.auth import hash_password, new_user_document
from newsletter_ai.config import Settings
from newsletter_ai.models import UserType
from newsletter_ai.news import NewsClient
from newsletter_ai.server import create_app
from newsletter_ai.services import Services

SAMPLE_HTML = (
    "<!DOCTYPE html><html><body><div style=\"max-width: 600px;\">"
    + "<p style=\"font-size: 14px;\">Weekly engineering digest.</p>" * 5
    + "</div></body></html>"
)


class StubAIClient:
    """Mimics ``client.responses.create`` and records every request."""

    def __init__(self, text=SAMPLE_HTML):
        self.text = text
        self.calls = []
        self.responses = self

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.text, Exception):
            raise self.text
        return SimpleNamespace(output_text=self.text, status="completed")


class StubMailer:
    def __init__(self, configured=True, error=None):
        self.configured = configured
        self.error = error
        self.sent = []

    def send(self, to, subject, html, attachments=()):
        if self.error:
            raise self.error
        self.sent.append(
            SimpleNamespace(to=list(to), subject=subject, html=html, attachments=list(attachments))
        )


def stub_render_pdf(html):
    return b"%PDF-1.4\n" + html.encode("utf-8")[:40] + b"\n%%EOF"


def _empty_news(request):
    return httpx.Response(200, json={"totalArticles": 0, "articles": []})


@pytest.fixture
def settings():
    return Settings(_env_file=None, GNEWS_API_KEY="test-key")


@pytest.fixture
def db():
    database = mongomock.MongoClient().newsletter_test
    store.ensure_indexes(database)
    return database


@pytest.fixture
def ai():
    return StubAIClient()


@pytest.fixture
def mailer():
    return StubMailer()


@pytest.fixture
def services(settings, db, ai, mailer):
    return Services(
        settings=settings,
        db=db,
        ai_client=ai,
        mailer=mailer,
        render_pdf=stub_render_pdf,
        news=NewsClient(settings, transport=httpx.MockTransport(_empty_news)),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services, init_indexes=False))


@pytest.fixture
def make_user(db):
    """Insert a user plus a live session; returns (user_doc, auth_headers)."""

    def _make(
        user_type=UserType.ADMIN,
        *,
        name="Ada",
        email=None,
        categories=("Java",),
        status="Active",
        expired=False,
    ):
        doc = new_user_document(
            name=name,
            email=email or f"{secrets.token_hex(4)}@example.com",
            password_hash=hash_password("password123"),
            user_type=user_type,
            categories=list(categories),
        )
        doc["status"] = status
        doc["_id"] = db[store.USERS].insert_one(doc).inserted_id
        token = secrets.token_urlsafe(16)
        now = store.utcnow()
        db[store.SESSIONS].insert_one(
            {
                "token": token,
                "user_id": doc["_id"],
                "created_at": now,
                "expires_at": now - timedelta(minutes=1) if expired else now + timedelta(days=1),
            }
        )
        return doc, {"Authorization": f"Bearer {token}"}

    return _make
