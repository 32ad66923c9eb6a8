"""
Lead API tests.

Tests:
1-4. Public submission (estimate, no estimate, validation, chat session)
5-6. Audit log
7-9. Admin list / detail / status update
"""

from renoquote import models


def _lead_payload(**overrides):
    payload = {
        "name": "Jane Homeowner",
        "email": "jane@example.com",
        "phone": "519-555-0199",
        "postalCode": "N5A 3H1",
        "projectType": "bathroom",
        "areaSqft": 60,
        "finishLevel": "premium",
        "timeline": "1_3_months",
        "budgetBand": "25k_40k",
        "goalsText": "Walk-in shower instead of the tub.",
        "chatTranscript": [
            {"role": "assistant", "content": "What are you looking to renovate?"},
            {"role": "user", "content": "My main bathroom."},
        ],
        "utmSource": "google",
    }
    payload.update(overrides)
    return payload


# ============================================================
# 1-4. Public submission
# ============================================================

def test_submit_lead_with_estimate(client, db):
    resp = client.post("/api/leads/", json=_lead_payload())
    assert resp.status_code == 201
    data = resp.json()
    assert data["success"] is True
    assert data["status"] == "draft_ready"
    assert data["has_estimate"] is True
    assert data["estimate"]["estimate_low"] < data["estimate"]["estimate_high"]

    lead = db.query(models.Lead).filter(models.Lead.id == data["lead_id"]).first()
    assert lead.postal_code == "N5A 3H1"
    assert lead.source == "ai_chat"
    assert lead.chat_transcript[1]["content"] == "My main bathroom."
    assert lead.quote_draft_json["confidence"] == 0.8


def test_submit_lead_without_rate_bands_is_new(client):
    resp = client.post("/api/leads/", json=_lead_payload(projectType="painting"))
    assert resp.status_code == 201
    assert resp.json()["status"] == "new"
    assert resp.json()["has_estimate"] is False


def test_submit_lead_validation(client):
    assert client.post("/api/leads/", json=_lead_payload(name="J")).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(email="not-an-email")).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(projectType="garage")).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(areaSqft=0)).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(budgetBand="a lot")).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(goalsText="x" * 2001)).status_code == 422
    assert client.post("/api/leads/", json=_lead_payload(confidenceScore=1.5)).status_code == 422


def test_submit_lead_completes_chat_session(client, db):
    session = models.ChatSession(messages_json=[])
    db.add(session)
    db.commit()

    resp = client.post("/api/leads/", json=_lead_payload(sessionId=session.id))
    assert resp.status_code == 201

    db.refresh(session)
    assert session.state == "completed"
    assert session.extracted_data["lead_id"] == resp.json()["lead_id"]
    assert session.extracted_data["project_type"] == "bathroom"


# ============================================================
# 5-6. Audit log
# ============================================================

def test_lead_created_audit_entry(client, db):
    lead_id = client.post("/api/leads/", json=_lead_payload()).json()["lead_id"]
    entry = db.query(models.AuditLog).filter(models.AuditLog.lead_id == lead_id).one()
    assert entry.action == "lead_created"
    assert entry.new_values == {"source": "ai_chat", "project_type": "bathroom", "has_estimate": True}


def test_status_change_audit_entry(client, db, auth_headers, lead_id):
    resp = client.patch(f"/api/leads/{lead_id}", json={"status": "won"}, headers=auth_headers)
    assert resp.status_code == 200
    entries = db.query(models.AuditLog).filter(
        models.AuditLog.lead_id == lead_id, models.AuditLog.action == "status_changed",
    ).all()
    assert len(entries) == 1
    assert entries[0].new_values["from"] == "draft_ready"
    assert entries[0].new_values["to"] == "won"


# ============================================================
# 7-9. Admin endpoints
# ============================================================

def test_list_leads_with_status_filter(client, auth_headers):
    client.post("/api/leads/", json=_lead_payload())
    client.post("/api/leads/", json=_lead_payload(projectType="exterior"))

    all_leads = client.get("/api/leads/", headers=auth_headers).json()
    assert len(all_leads) == 2

    new_leads = client.get("/api/leads/?status=new", headers=auth_headers).json()
    assert [lead["project_type"] for lead in new_leads] == ["exterior"]


def test_get_lead(client, auth_headers, lead_id):
    resp = client.get(f"/api/leads/{lead_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Jane Homeowner"
    assert client.get("/api/leads/missing", headers=auth_headers).status_code == 404


def test_update_lead_notes_only(client, db, auth_headers, lead_id):
    resp = client.patch(f"/api/leads/{lead_id}", json={"notes": "Call after 5pm"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["notes"] == "Call after 5pm"
    assert resp.json()["status"] == "draft_ready"
    assert db.query(models.AuditLog).filter(models.AuditLog.action == "status_changed").count() == 0
