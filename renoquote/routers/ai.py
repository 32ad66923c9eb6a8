"""
Public AI endpoints: the chat funnel and the room visualizer.

POST /api/ai/chat                quote assistant conversation turn
POST /api/ai/visualize           generate design concepts from a room photo
POST /api/ai/visualize/summary   summarize a voice session into preferences
"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .. import gemini, models, schemas, storage
from ..config import settings
from ..database import get_db
from ..design_intent import (
    VoiceSummaryResponse,
    build_constraints_text,
    get_room_type_label,
    get_style_label,
    merge_design_intent,
)
from ..visualization import (
    VisualizationTimeout,
    generate_concepts,
    generate_share_token,
    get_device_type,
)

logger = logging.getLogger("renoquote.ai")

router = APIRouter(prefix="/ai", tags=["ai"])


def _require_gemini():
    if not gemini.is_configured():
        raise HTTPException(status_code=500, detail="GEMINI_API_KEY not configured")


@router.post("/chat")
def chat(request: schemas.ChatRequest, db: Session = Depends(get_db)):
    """One assistant turn. The full transcript is kept on the ChatSession."""
    _require_gemini()

    session = None
    if request.session_id:
        session = db.query(models.ChatSession).filter(models.ChatSession.id == request.session_id).first()
    if not session:
        session = models.ChatSession(messages_json=[])
        db.add(session)
        db.flush()

    messages = [m.model_dump(mode="json", exclude_none=True) for m in request.messages]

    try:
        reply = gemini.chat_completion(messages)
    except gemini.GeminiError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=str(e))

    session.messages_json = messages + [{"role": "assistant", "content": reply}]
    flag_modified(session, "messages_json")
    db.commit()

    return {"session_id": session.id, "message": {"role": "assistant", "content": reply}}


@router.post("/visualize")
def visualize(
    request: schemas.VisualizationRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """
    Generate design concepts for a room photo.

    The full DesignPreferences (text box, voice summary, explicit intent) is
    merged into one DesignIntent and rendered into the prompt's user-preferences
    block alongside any plain constraints string.
    """
    started = time.monotonic()

    try:
        storage.parse_data_url(request.image)
    except storage.InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))

    room_type = request.room_type.value
    style = request.style.value
    room_label = style_label = None
    design_intent = None
    constraint_parts = []

    if request.constraints and request.constraints.strip():
        constraint_parts.append(request.constraints.strip())

    prefs = request.preferences
    if prefs:
        merged = merge_design_intent(prefs)
        design_intent = merged.model_dump(by_alias=True)
        intent_text = build_constraints_text(merged)
        if intent_text:
            constraint_parts.append(intent_text)
        room_label = get_room_type_label(prefs)
        style_label = get_style_label(prefs)

    constraints = "\n".join(constraint_parts) or None

    try:
        concepts = generate_concepts(
            request.image,
            room_type,
            style,
            constraints=constraints,
            count=request.count,
            timeout_seconds=settings.VISUALIZATION_TIMEOUT_SECONDS,
            room_label=room_label,
            style_label=style_label,
        )
    except VisualizationTimeout as e:
        logger.error("Visualization timed out: %s", e)
        raise HTTPException(
            status_code=504,
            detail="The AI took too long to generate visualizations. Please try again.",
        )

    # Stored only once generation succeeded, so a timeout leaves no orphaned upload
    original_url = storage.store_original_photo(request.image)

    generation_time_ms = int((time.monotonic() - started) * 1000)
    user_agent = http_request.headers.get("user-agent")

    viz = models.Visualization(
        original_photo_url=original_url,
        room_type=room_type,
        style=style,
        constraints=constraints,
        design_intent=design_intent,
        generated_concepts=concepts,
        generation_time_ms=generation_time_ms,
        share_token=generate_share_token(),
        source="visualizer",
        device_type=get_device_type(user_agent),
        user_agent=user_agent,
    )
    db.add(viz)
    db.commit()
    db.refresh(viz)

    logger.info("Visualization %s: %d concepts in %dms", viz.id, len(concepts), generation_time_ms)
    return {
        "id": viz.id,
        "original_image_url": original_url,
        "room_type": room_type,
        "style": style,
        "constraints": constraints,
        "design_intent": design_intent,
        "concepts": concepts,
        "generation_time_ms": generation_time_ms,
        "share_token": viz.share_token,
        "created_at": viz.created_at.isoformat(),
    }


@router.post("/visualize/summary", response_model=VoiceSummaryResponse, response_model_by_alias=True)
def summarize_voice(request: schemas.VoiceSummaryRequest):
    """Turn a voice-session transcript into a summary + extracted preferences."""
    _require_gemini()
    transcript = [entry.model_dump(mode="json") for entry in request.transcript]

    try:
        result = gemini.summarize_voice_transcript(transcript)
        return VoiceSummaryResponse.model_validate(result)
    except gemini.GeminiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValidationError as e:
        logger.error("Voice summary had unexpected shape: %s", e)
        raise HTTPException(status_code=502, detail="AI returned an unexpected summary format")
