"""
Quote draft endpoints (admin).

GET  /api/quotes/{lead_id}        latest draft with computed totals
PUT  /api/quotes/{lead_id}        save a new draft version
POST /api/quotes/{lead_id}/send   email the quote PDF to the customer

Every response's totals come from compute_totals() over the stored line items
and percentages. The subtotal/total columns on QuoteDraft are a snapshot for
list views only.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..config import QuoteDefaults, business_profile, get_quote_defaults
from ..database import get_db
from ..email_sender import (
    EmailNotConfigured,
    EmailSendError,
    render_quote_email,
    send_quote_email,
)
from ..pdf_generator import build_pdf_filename, build_quote_number, generate_quote_pdf
from ..quote_totals import QuoteTotals, compute_totals, parse_line_items

logger = logging.getLogger("renoquote.quotes")

router = APIRouter(prefix="/quotes", tags=["quotes"])

DEFAULT_ASSUMPTIONS = [
    "All work to be completed during regular business hours (Mon-Fri, 8am-5pm)",
    "Customer provides access to work area and utilities",
    "Existing structure is sound and code-compliant",
    "No hidden damage or issues behind walls/floors",
]

DEFAULT_EXCLUSIONS = [
    "Permit fees (if required)",
    "Moving or storage of customer belongings",
    "Repairs to existing structural damage",
    "Hazardous material removal (asbestos, mold, etc.)",
]


# --- Helpers ---

def get_lead_or_404(lead_id: str, db: Session) -> models.Lead:
    lead = db.query(models.Lead).filter(models.Lead.id == lead_id).first()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


def latest_draft(lead_id: str, db: Session) -> Optional[models.QuoteDraft]:
    return (
        db.query(models.QuoteDraft)
        .filter(models.QuoteDraft.lead_id == lead_id)
        .order_by(models.QuoteDraft.version.desc())
        .first()
    )


def lead_to_dict(lead: models.Lead) -> dict:
    """Plain dict for the PDF and email renderers."""
    return {
        "id": lead.id,
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "address": lead.address,
        "city": lead.city,
        "province": lead.province,
        "postal_code": lead.postal_code,
        "project_type": lead.project_type.value if lead.project_type else "other",
        "area_sqft": lead.area_sqft,
        "finish_level": lead.finish_level.value if lead.finish_level else None,
        "goals_text": lead.goals_text,
    }


def draft_to_dict(draft: models.QuoteDraft) -> dict:
    return {
        "id": draft.id,
        "lead_id": draft.lead_id,
        "version": draft.version,
        "line_items": draft.line_items or [],
        "assumptions": draft.assumptions or [],
        "exclusions": draft.exclusions or [],
        "contingency_percent": draft.contingency_percent,
        "tax_percent": draft.tax_percent,
        "deposit_percent": draft.deposit_percent,
        "validity_days": draft.validity_days,
        "expires_at": draft.expires_at,
        "sent_at": draft.sent_at,
        "sent_to_email": draft.sent_to_email,
        "created_at": draft.created_at,
    }


def totals_for(quote: dict) -> QuoteTotals:
    return compute_totals(
        parse_line_items(quote.get("line_items")),
        quote.get("contingency_percent") or 0,
        quote.get("tax_percent") or 0,
        quote.get("deposit_percent") or 0,
    )


def _quote_response(lead: models.Lead, quote: dict, totals: QuoteTotals) -> dict:
    items = parse_line_items(quote.get("line_items"))
    created = quote.get("created_at") or datetime.utcnow()
    return {
        **quote,
        "line_items": [item.model_dump(mode="json") for item in items],
        "quote_number": build_quote_number(created, lead.id, business_profile()["quote_number_prefix"]),
        "totals": totals.model_dump(mode="json"),
        "display": totals.as_display(),
        "estimate": lead.quote_draft_json,
    }


# --- Endpoints ---

@router.get("/{lead_id}")
def get_quote(
    lead_id: str,
    db: Session = Depends(get_db),
    defaults: QuoteDefaults = Depends(get_quote_defaults),
    current_user: models.User = Depends(get_current_user),
):
    """Latest draft, or an unsaved blank draft prefilled with business defaults."""
    lead = get_lead_or_404(lead_id, db)
    draft = latest_draft(lead_id, db)

    if draft:
        quote = draft_to_dict(draft)
    else:
        quote = {
            "id": None,
            "lead_id": lead.id,
            "version": 0,
            "line_items": [],
            "assumptions": list(DEFAULT_ASSUMPTIONS),
            "exclusions": list(DEFAULT_EXCLUSIONS),
            "contingency_percent": float(defaults.default_contingency_percent),
            "tax_percent": float(defaults.tax_percent),
            "deposit_percent": float(defaults.default_deposit_percent),
            "validity_days": defaults.default_validity_days,
            "expires_at": None,
            "sent_at": None,
            "sent_to_email": None,
            "created_at": None,
        }
    return _quote_response(lead, quote, totals_for(quote))


@router.put("/{lead_id}")
def save_quote(
    lead_id: str,
    data: schemas.QuoteDraftSave,
    db: Session = Depends(get_db),
    defaults: QuoteDefaults = Depends(get_quote_defaults),
    current_user: models.User = Depends(get_current_user),
):
    """Save a new draft version. Tax always comes from the business defaults."""
    lead = get_lead_or_404(lead_id, db)
    previous = latest_draft(lead_id, db)

    contingency = data.contingency_percent
    if contingency is None:
        contingency = previous.contingency_percent if previous else defaults.default_contingency_percent
    deposit = data.deposit_percent
    if deposit is None:
        deposit = previous.deposit_percent if previous else defaults.default_deposit_percent
    validity_days = data.validity_days or (previous.validity_days if previous else defaults.default_validity_days)

    totals = compute_totals(data.line_items, contingency, defaults.tax_percent, deposit)
    now = datetime.utcnow()

    draft = models.QuoteDraft(
        lead_id=lead.id,
        version=(previous.version + 1) if previous else 1,
        line_items=[item.model_dump(mode="json") for item in data.line_items],
        assumptions=[a.strip() for a in data.assumptions if a.strip()],
        exclusions=[e.strip() for e in data.exclusions if e.strip()],
        contingency_percent=float(totals.contingency_percent),
        tax_percent=float(totals.tax_percent),
        deposit_percent=float(totals.deposit_percent),
        validity_days=validity_days,
        subtotal=float(totals.subtotal),
        total=float(totals.total),
        created_at=now,
        expires_at=now + timedelta(days=validity_days),
    )
    db.add(draft)
    lead.updated_at = now
    db.commit()
    db.refresh(draft)

    logger.info("Quote draft saved: lead=%s version=%s total=%s",
                lead.id, draft.version, totals.total)
    return _quote_response(lead, draft_to_dict(draft), totals)


@router.post("/{lead_id}/send")
def send_quote(
    lead_id: str,
    request: Optional[schemas.SendQuoteRequest] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Email the latest draft to the customer with the PDF attached."""
    request = request or schemas.SendQuoteRequest()
    lead = get_lead_or_404(lead_id, db)

    to_email = request.recipient_email or lead.email
    if not to_email:
        raise HTTPException(status_code=400, detail="No email address available for this lead")

    draft = latest_draft(lead_id, db)
    if not draft:
        raise HTTPException(
            status_code=404,
            detail="No quote found for this lead. Please create a quote first.",
        )
    if not draft.line_items:
        raise HTTPException(
            status_code=400,
            detail="Quote has no line items. Please add items before sending.",
        )

    business = business_profile()
    lead_data = lead_to_dict(lead)
    quote = draft_to_dict(draft)
    totals = totals_for(quote)
    quote_number = build_quote_number(draft.created_at, lead.id, business["quote_number_prefix"])
    filename = build_pdf_filename(quote_number, lead.name)

    pdf_bytes = generate_quote_pdf(lead_data, quote, business)
    subject, html_body, text_body = render_quote_email(
        lead_data, quote, totals, request.custom_message, quote_number, business,
    )

    try:
        message_id = send_quote_email(to_email, subject, html_body, text_body, pdf_bytes, filename)
    except EmailNotConfigured:
        raise HTTPException(status_code=500, detail="Email service not configured")
    except EmailSendError as e:
        raise HTTPException(status_code=500, detail=f"Failed to send email: {e}")

    now = datetime.utcnow()
    draft.sent_at = now
    draft.sent_to_email = to_email
    lead.status = models.LeadStatus.SENT
    lead.last_contacted_at = now
    lead.updated_at = now
    db.add(models.AuditLog(
        lead_id=lead.id,
        action="quote_sent",
        new_values={
            "quote_id": draft.id,
            "quote_version": draft.version,
            "sent_to": to_email,
            "total": float(totals.total),
            "email_id": message_id,
            "custom_message": request.custom_message,
        },
    ))
    db.commit()

    logger.info("Quote %s sent to %s by user %s", quote_number, to_email, current_user.id)
    return {
        "success": True,
        "message": "Quote sent successfully",
        "data": {
            "email_id": message_id,
            "sent_to": to_email,
            "sent_at": now.isoformat(),
            "quote_number": quote_number,
        },
    }
