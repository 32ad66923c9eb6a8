"""
Lead endpoints.

POST /api/leads/         public submission from the chat funnel
GET  /api/leads/         admin list, optional ?status= filter
GET  /api/leads/{id}     admin detail
PATCH /api/leads/{id}    admin status / notes update
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status as http_status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..config import QuoteDefaults, get_quote_defaults
from ..database import get_db
from ..estimate_engine import calculate_estimate, can_estimate

logger = logging.getLogger("renoquote.leads")

router = APIRouter(prefix="/leads", tags=["leads"])


def _get_lead_or_404(lead_id: str, db: Session) -> models.Lead:
    lead = db.query(models.Lead).filter(models.Lead.id == lead_id).first()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


def _rough_estimate(data: schemas.LeadCreate, defaults: QuoteDefaults) -> Optional[dict]:
    project_type = data.project_type.value
    if not can_estimate(project_type):
        return None
    estimate = calculate_estimate(
        project_type,
        area_sqft=data.area_sqft,
        finish_level=data.finish_level.value if data.finish_level else None,
        defaults=defaults,
    )
    return {
        "estimate_low": estimate["low"],
        "estimate_high": estimate["high"],
        "breakdown": estimate["breakdown"],
        "confidence": estimate["confidence"],
        "notes": estimate["notes"],
    }


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def submit_lead(
    data: schemas.LeadCreate,
    db: Session = Depends(get_db),
    defaults: QuoteDefaults = Depends(get_quote_defaults),
):
    """Public lead submission. Attaches a ballpark estimate when the project type has rate bands."""
    estimate = _rough_estimate(data, defaults)

    fields = data.model_dump(exclude={"chat_transcript"})
    if data.chat_transcript is not None:
        fields["chat_transcript"] = [m.model_dump(mode="json") for m in data.chat_transcript]

    lead = models.Lead(
        **fields,
        quote_draft_json=estimate,
        status=models.LeadStatus.DRAFT_READY if estimate else models.LeadStatus.NEW,
        source="ai_chat",
    )
    db.add(lead)
    db.flush()

    if data.session_id:
        session = db.query(models.ChatSession).filter(models.ChatSession.id == data.session_id).first()
        if session:
            session.state = "completed"
            session.extracted_data = {
                "lead_id": lead.id,
                "project_type": data.project_type.value,
                "estimate": estimate,
            }

    db.add(models.AuditLog(
        lead_id=lead.id,
        action="lead_created",
        new_values={
            "source": "ai_chat",
            "project_type": data.project_type.value,
            "has_estimate": estimate is not None,
        },
    ))
    db.commit()
    db.refresh(lead)

    logger.info("Lead created: id=%s project_type=%s estimate=%s",
                lead.id, data.project_type.value, estimate is not None)
    return {
        "success": True,
        "lead_id": lead.id,
        "status": lead.status.value,
        "has_estimate": estimate is not None,
        "estimate": estimate,
    }


@router.get("/", response_model=List[schemas.Lead])
def list_leads(
    status: Optional[models.LeadStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    query = db.query(models.Lead)
    if status:
        query = query.filter(models.Lead.status == status)
    return query.order_by(models.Lead.created_at.desc()).offset(skip).limit(limit).all()


@router.get("/{lead_id}", response_model=schemas.Lead)
def get_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _get_lead_or_404(lead_id, db)


@router.patch("/{lead_id}", response_model=schemas.Lead)
def update_lead(
    lead_id: str,
    update: schemas.LeadUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    lead = _get_lead_or_404(lead_id, db)
    changes = update.model_dump(exclude_unset=True)
    if changes.get("status") is None:
        changes.pop("status", None)
    old_status = lead.status

    for field, value in changes.items():
        setattr(lead, field, value)
    lead.updated_at = datetime.utcnow()

    if "status" in changes and changes["status"] != old_status:
        db.add(models.AuditLog(
            lead_id=lead.id,
            action="status_changed",
            new_values={
                "from": old_status.value if old_status else None,
                "to": lead.status.value,
                "by_user_id": current_user.id,
            },
        ))
        logger.info("Lead %s status %s -> %s", lead.id, old_status, lead.status)

    db.commit()
    db.refresh(lead)
    return lead
