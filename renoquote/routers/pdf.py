"""
PDF download endpoint.

GET /api/quotes/{lead_id}/pdf  download the latest quote draft as a PDF.

Supports auth via:
1. Authorization: Bearer <token> header (standard)
2. ?token=<jwt> query param (for window.open / direct download links)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user_or_token_param
from ..config import business_profile
from ..database import get_db
from ..pdf_generator import build_pdf_filename, build_quote_number, generate_quote_pdf
from .quotes import draft_to_dict, get_lead_or_404, latest_draft, lead_to_dict

logger = logging.getLogger("renoquote.pdf")

router = APIRouter(prefix="/quotes", tags=["pdf"])


@router.get("/{lead_id}/pdf")
def download_pdf(
    lead_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user_or_token_param),
):
    """
    Generate and download the quote PDF.

    Auth: Bearer header OR ?token= query param.
    Returns: application/pdf
    """
    lead = get_lead_or_404(lead_id, db)
    draft = latest_draft(lead_id, db)
    if not draft:
        raise HTTPException(status_code=404, detail="No quote found for this lead")

    business = business_profile()
    pdf_bytes = generate_quote_pdf(lead_to_dict(lead), draft_to_dict(draft), business)

    quote_number = build_quote_number(draft.created_at, lead.id, business["quote_number_prefix"])
    filename = build_pdf_filename(quote_number, lead.name)
    logger.info("PDF generated: %s (%d bytes)", filename, len(pdf_bytes))

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
