from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from api import db_models


def _payload(**overrides):
    body = {
        "fullName": "Ada Obi",
        "email": "Ada.Obi@Example.com",
        "phone": "+234 801 234 5678",
        "companyName": "Obi Energy Ltd",
        "category": "verified-buyer",
        "productType": "crude-oil",
        "estimatedVolume": "500000",
        "volumeUnit": "BBLs",
        "message": "We are looking to lift 500k barrels of Bonny Light monthly.",
        "agreedToTerms": True,
    }
    body.update(overrides)
    return body


def test_submit_inquiry_returns_201_and_stores_pending(client, scope):
    resp = client.post("/api/contact", json=_payload(), headers={"User-Agent": "pytest"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Inquiry submitted successfully"
    assert body["inquiryId"].startswith("inq_")

    with scope() as session:
        row = session.execute(select(db_models.Inquiry)).scalars().one()
    assert row.inquiry_id == body["inquiryId"]
    assert row.status == "pending"
    assert row.source == "contact_form"
    assert row.email == "ada.obi@example.com"
    assert row.user_agent == "pytest"


def test_short_message_is_rejected(client, scope):
    resp = client.post("/api/contact", json=_payload(message="Call me"))

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Validation failed"
    assert body["details"]["message"] == ["Message must be at least 20 characters"]
    with scope() as session:
        assert session.execute(select(db_models.Inquiry)).first() is None


def test_persistence_failure_returns_500_and_stores_nothing(client, scope, monkeypatch):
    def broken_insert(session, payload, **kwargs):
        session.add(db_models.Inquiry(inquiry_id="inq_partial", full_name="x", email="x@example.com"))
        raise OperationalError("INSERT INTO inquiries", {}, Exception("database is locked"))

    monkeypatch.setattr("api.routes.create_inquiry", broken_insert)

    resp = client.post("/api/contact", json=_payload())

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to submit inquiry", "message": "Please try again later."}
    with scope() as session:
        assert session.execute(select(db_models.Inquiry)).first() is None


def test_terms_email_and_category_are_validated(client):
    resp = client.post(
        "/api/contact",
        json=_payload(agreedToTerms=False, email="not-an-email", category="reseller"),
    )

    assert resp.status_code == 400
    details = resp.json()["details"]
    assert details["agreedToTerms"] == ["You must agree to the terms"]
    assert details["email"] == ["Invalid email address"]
    assert "category" in details


def test_listing_requires_admin_session(client):
    resp = client.get("/api/contact")

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Unauthorized"}


def test_admin_can_list_read_and_update_inquiries(admin_client):
    inquiry_id = admin_client.post("/api/contact", json=_payload()).json()["inquiryId"]

    listing = admin_client.get("/api/contact")
    assert listing.status_code == 200
    assert listing.json()["count"] == 1
    assert listing.json()["data"][0]["inquiry_id"] == inquiry_id

    detail = admin_client.get(f"/api/contact/{inquiry_id}")
    assert detail.status_code == 200
    assert detail.json()["company_name"] == "Obi Energy Ltd"

    updated = admin_client.patch(f"/api/contact/{inquiry_id}", json={"status": "contacted", "notes": " Called back "})
    assert updated.status_code == 200
    assert updated.json()["status"] == "contacted"
    assert updated.json()["notes"] == "Called back"

    assert admin_client.get("/api/contact", params={"status": "pending"}).json()["count"] == 0
    assert admin_client.get("/api/contact/inq_missing").status_code == 404
    assert admin_client.patch(f"/api/contact/{inquiry_id}", json={"status": "archived"}).status_code == 400
