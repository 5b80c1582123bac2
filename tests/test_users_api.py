from datetime import timedelta

from conftest import StubMailer
from newsletter_ai import pipeline, store
from newsletter_ai.auth import verify_password
from newsletter_ai.models import UserType


def test_register_creates_regular_user(client, db):
    resp = client.post(
        "/users/register",
        json={
            "name": "Lin",
            "email": "lin@example.com",
            "password": "longenough",
            "categories": ["Java"],
        },
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["user_type"] == "user"
    assert "password" not in body
    stored = db[store.USERS].find_one({"email": "lin@example.com"})
    assert verify_password("longenough", stored["password"])


def test_register_duplicate_email_is_400(client):
    payload = {"name": "Lin", "email": "lin@example.com", "password": "longenough"}
    assert client.post("/users/register", json=payload).status_code == 201

    resp = client.post("/users/register", json=payload)

    assert resp.status_code == 400
    assert "already exists" in resp.json()["detail"]


def test_register_validates_input(client):
    resp = client.post(
        "/users/register", json={"name": "Lin", "email": "not-an-email", "password": "short"}
    )
    assert resp.status_code == 400


def test_me_hides_password(client, make_user):
    user, headers = make_user(UserType.USER, name="Kai")

    body = client.get("/users/me", headers=headers).json()

    assert body["id"] == str(user["_id"])
    assert body["name"] == "Kai"
    assert "password" not in body


def test_update_profile_changes_name_and_password(client, make_user, db):
    user, headers = make_user(UserType.USER)

    resp = client.patch(
        "/users/me/profile", json={"name": "Renamed", "password": "newpassword"}, headers=headers
    )

    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    stored = db[store.USERS].find_one({"_id": user["_id"]})
    assert verify_password("newpassword", stored["password"])


def test_update_categories_replaces_list(client, make_user):
    _, headers = make_user(UserType.USER, categories=("Java",))

    resp = client.patch("/users/me/categories", json={"categories": ["DevOps"]}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["categories"] == ["DevOps"]


def _newsletter(db, title, recipients, age_days=0):
    return db[store.NEWSLETTERS].insert_one(
        {
            "title": title,
            "category": "Java",
            "status": "sent",
            "recipients": recipients,
            "pdf_content": {"data": b"%PDF-1.4", "content_type": "application/pdf"},
            "created_at": store.utcnow() - timedelta(days=age_days),
        }
    ).inserted_id


def test_my_newsletters_lists_received_only(client, make_user, db):
    user, headers = make_user(UserType.USER)
    other, _ = make_user(UserType.USER)
    _newsletter(db, "Older", [user["_id"]], age_days=3)
    _newsletter(db, "Newer", [user["_id"], other["_id"]])
    _newsletter(db, "Not mine", [other["_id"]])

    body = client.get("/users/my-newsletters", headers=headers).json()

    assert [n["title"] for n in body] == ["Newer", "Older"]
    assert set(body[0]) == {"id", "title", "category", "created_at"}


def test_send_newsletter_to_self(client, make_user, db, mailer):
    user, headers = make_user(UserType.USER, email="self@example.com")
    newsletter_id = _newsletter(db, "Digest", [])

    resp = client.post(
        "/users/send-newsletter-to-self", json={"newsletter_id": str(newsletter_id)}, headers=headers
    )

    assert resp.status_code == 200
    assert resp.json()["message"] == "Newsletter successfully sent to self@example.com."
    assert mailer.sent[0].attachments[0].filename == "Digest.pdf"
    assert db[store.NEWSLETTERS].find_one({"_id": newsletter_id})["recipients"] == [user["_id"]]


def test_send_to_self_without_email_service_is_500(client, make_user, db, services):
    services.mailer = StubMailer(configured=False)
    _, headers = make_user(UserType.USER)
    newsletter_id = _newsletter(db, "Digest", [])

    resp = client.post(
        "/users/send-newsletter-to-self", json={"newsletter_id": str(newsletter_id)}, headers=headers
    )

    assert resp.status_code == 500


def test_notifications_most_recent_ten(client, make_user, services):
    user, headers = make_user(UserType.USER)
    newsletter_id = _newsletter(services.db, "Digest", [])
    for i in range(12):
        pipeline.create_notifications(services, [user["_id"]], newsletter_id, f"note {i}")
        services.db[store.NOTIFICATIONS].update_one(
            {"message": f"note {i}"},
            {"$set": {"created_at": store.utcnow() + timedelta(seconds=i)}},
        )

    body = client.get("/notifications", headers=headers).json()

    assert len(body) == 10
    assert body[0]["message"] == "note 11"
    assert body[0]["is_read"] is False


def test_mark_as_read_only_touches_caller(client, make_user, services):
    user, headers = make_user(UserType.USER)
    other, _ = make_user(UserType.USER)
    newsletter_id = _newsletter(services.db, "Digest", [])
    pipeline.create_notifications(services, [user["_id"], other["_id"]], newsletter_id, "hi")

    resp = client.post("/notifications/mark-as-read", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["updated"] == 1
    notes = services.db[store.NOTIFICATIONS]
    assert notes.find_one({"user": user["_id"]})["is_read"] is True
    assert notes.find_one({"user": other["_id"]})["is_read"] is False
