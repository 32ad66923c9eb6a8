"""
Quote draft, PDF and send-quote API tests.

Tests:
1-2.   GET blank draft with business defaults
3-6.   PUT draft (versioning, recomputed totals, validation, tax from defaults)
7-9.   PDF download (bearer, ?token=, auth required)
10-15. Send quote (success, overrides, 400/404/500 paths)
16.    Settings endpoint
"""

from unittest.mock import patch

import pytest

from renoquote import models
from renoquote.config import settings
from renoquote.email_sender import render_quote_email
from renoquote.quote_totals import compute_totals, parse_line_items


def _sample_draft(**overrides):
    draft = {
        "line_items": [
            {"description": "Vanity", "category": "materials", "quantity": 2, "unit": "ea", "unit_price": 50},
            {"description": "Install", "category": "labor", "quantity": 1, "unit": "lot", "unit_price": 30,
             "total": 12345},
        ],
        "assumptions": ["Customer provides access to work area and utilities", "  "],
        "exclusions": ["Permit fees (if required)"],
        "contingency_percent": 10,
        "deposit_percent": 50,
        "validity_days": 45,
    }
    draft.update(overrides)
    return draft


@pytest.fixture
def saved_quote(client, auth_headers, lead_id):
    resp = client.put(f"/api/quotes/{lead_id}", json=_sample_draft(), headers=auth_headers)
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def email_enabled():
    with patch.object(settings, "RESEND_API_KEY", "re_test_key"), \
            patch("renoquote.email_sender.smtplib.SMTP") as smtp_cls:
        yield smtp_cls


# ============================================================
# 1-2. Blank draft
# ============================================================

def test_get_quote_without_draft_returns_defaults(client, auth_headers, lead_id):
    resp = client.get(f"/api/quotes/{lead_id}", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == 0
    assert data["line_items"] == []
    assert data["contingency_percent"] == 10.0
    assert data["tax_percent"] == 13.0
    assert data["deposit_percent"] == 50.0
    assert data["validity_days"] == 30
    assert "Permit fees (if required)" in data["exclusions"]
    assert data["totals"]["total"] == 0
    assert data["estimate"]["estimate_low"] > 0


def test_get_quote_unknown_lead(client, auth_headers):
    assert client.get("/api/quotes/nope", headers=auth_headers).status_code == 404


# ============================================================
# 3-6. Save draft
# ============================================================

def test_save_quote_computes_totals(saved_quote):
    assert saved_quote["version"] == 1
    totals = saved_quote["totals"]
    assert totals["subtotal"] == pytest.approx(130)
    assert totals["contingency_amount"] == pytest.approx(13)
    assert totals["tax_amount"] == pytest.approx(18.59)
    assert totals["total"] == pytest.approx(161.59)
    assert totals["deposit_required"] == pytest.approx(80.795)
    assert saved_quote["display"]["deposit_required"] == "$80.80"
    # Stored "total" on the line item is ignored
    assert saved_quote["line_items"][1]["total"] == pytest.approx(30)
    assert saved_quote["assumptions"] == ["Customer provides access to work area and utilities"]
    assert saved_quote["quote_number"].startswith("RWR-")


def test_save_quote_creates_new_versions(client, db, auth_headers, lead_id, saved_quote):
    resp = client.put(f"/api/quotes/{lead_id}", json=_sample_draft(contingency_percent=0), headers=auth_headers)
    assert resp.json()["version"] == 2
    assert resp.json()["totals"]["total"] == pytest.approx(146.9)

    drafts = db.query(models.QuoteDraft).filter(models.QuoteDraft.lead_id == lead_id).all()
    assert sorted(d.version for d in drafts) == [1, 2]

    latest = client.get(f"/api/quotes/{lead_id}", headers=auth_headers).json()
    assert latest["version"] == 2
    assert latest["validity_days"] == 45


def test_save_quote_rejects_bad_percentages(client, auth_headers, lead_id):
    for bad in ({"contingency_percent": 150}, {"deposit_percent": -5}):
        resp = client.put(f"/api/quotes/{lead_id}", json=_sample_draft(**bad), headers=auth_headers)
        assert resp.status_code == 422
    resp = client.put(
        f"/api/quotes/{lead_id}",
        json=_sample_draft(line_items=[{"description": "x", "quantity": -1, "unit_price": 10}]),
        headers=auth_headers,
    )
    assert resp.status_code == 422


def test_save_quote_uses_configured_tax(client, auth_headers, lead_id):
    payload = _sample_draft()
    payload["tax_percent"] = 0
    resp = client.put(f"/api/quotes/{lead_id}", json=payload, headers=auth_headers)
    assert resp.json()["tax_percent"] == 13.0


# ============================================================
# 7-9. PDF download
# ============================================================

def test_pdf_download_with_bearer(client, auth_headers, lead_id, saved_quote):
    resp = client.get(f"/api/quotes/{lead_id}/pdf", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert f'{saved_quote["quote_number"]}-Quote-Jane-Homeowner.pdf' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_pdf_download_with_token_param(client, auth_headers, lead_id, saved_quote):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    resp = client.get(f"/api/quotes/{lead_id}/pdf?token={token}")
    assert resp.status_code == 200


def test_pdf_download_requires_auth_and_draft(client, auth_headers, lead_id):
    assert client.get(f"/api/quotes/{lead_id}/pdf").status_code == 401
    assert client.get(f"/api/quotes/{lead_id}/pdf", headers=auth_headers).status_code == 404


# ============================================================
# 10-15. Send quote
# ============================================================

def test_send_quote(client, db, auth_headers, lead_id, saved_quote, email_enabled):
    resp = client.post(
        f"/api/quotes/{lead_id}/send",
        json={"customMessage": "Thanks for having us out on Tuesday."},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["sent_to"] == "jane@example.com"
    assert data["quote_number"] == saved_quote["quote_number"]

    server = email_enabled.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("resend", "re_test_key")
    msg = server.send_message.call_args.args[0]
    assert msg["To"] == "jane@example.com"
    assert msg["Subject"] == f"Your Kitchen Quote from Red White Reno - {saved_quote['quote_number']}"
    attachments = list(msg.iter_attachments())
    assert attachments[0].get_filename().endswith("-Quote-Jane-Homeowner.pdf")
    assert "Thanks for having us out on Tuesday." in msg.get_body(("plain",)).get_content()

    lead = db.query(models.Lead).filter(models.Lead.id == lead_id).one()
    assert lead.status == models.LeadStatus.SENT
    assert lead.last_contacted_at is not None
    draft = db.query(models.QuoteDraft).filter(models.QuoteDraft.lead_id == lead_id).one()
    assert draft.sent_at is not None
    assert draft.sent_to_email == "jane@example.com"
    audit = db.query(models.AuditLog).filter(models.AuditLog.action == "quote_sent").one()
    assert audit.new_values["total"] == pytest.approx(161.59)
    assert audit.new_values["email_id"] == data["email_id"]


def test_send_quote_recipient_override(client, auth_headers, lead_id, saved_quote, email_enabled):
    resp = client.post(
        f"/api/quotes/{lead_id}/send",
        json={"recipientEmail": "partner@example.com"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["sent_to"] == "partner@example.com"


def test_send_quote_message_too_long(client, auth_headers, lead_id, saved_quote, email_enabled):
    resp = client.post(
        f"/api/quotes/{lead_id}/send", json={"customMessage": "x" * 501}, headers=auth_headers,
    )
    assert resp.status_code == 422


def test_send_quote_without_draft_or_items(client, auth_headers, lead_id, email_enabled):
    resp = client.post(f"/api/quotes/{lead_id}/send", json={}, headers=auth_headers)
    assert resp.status_code == 404

    client.put(f"/api/quotes/{lead_id}", json=_sample_draft(line_items=[]), headers=auth_headers)
    resp = client.post(f"/api/quotes/{lead_id}/send", json={}, headers=auth_headers)
    assert resp.status_code == 400
    assert "no line items" in resp.json()["detail"]


def test_send_quote_email_not_configured(client, auth_headers, lead_id, saved_quote):
    resp = client.post(f"/api/quotes/{lead_id}/send", json={}, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Email service not configured"


def test_send_quote_smtp_failure(client, db, auth_headers, lead_id, saved_quote, email_enabled):
    import smtplib
    server = email_enabled.return_value.__enter__.return_value
    server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

    resp = client.post(f"/api/quotes/{lead_id}/send", json={}, headers=auth_headers)
    assert resp.status_code == 500
    lead = db.query(models.Lead).filter(models.Lead.id == lead_id).one()
    assert lead.status != models.LeadStatus.SENT


def test_email_totals_match_pdf_totals(saved_quote):
    """Email renders the same compute_totals figures as the editor."""
    totals = compute_totals(parse_line_items(saved_quote["line_items"]), 10, 13, 50)
    _, html, text = render_quote_email(
        {"name": "Jane Homeowner", "project_type": "kitchen"}, {"validity_days": 45}, totals,
        quote_number=saved_quote["quote_number"],
    )
    assert "Total: $161.59" in text
    assert "Deposit Required (50%): $80.80" in text
    assert "$161.59" in html
    assert "valid for 45 days" in text


# ============================================================
# 16. Settings
# ============================================================

def test_quote_defaults_endpoint(client):
    resp = client.get("/api/settings/quote-defaults")
    assert resp.status_code == 200
    assert resp.json() == {
        "tax_percent": 13.0,
        "default_contingency_percent": 10.0,
        "default_deposit_percent": 50.0,
        "default_validity_days": 30,
    }
