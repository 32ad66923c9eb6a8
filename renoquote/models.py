from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Enum, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base
import enum
import uuid


# --- Enums ---

class LeadStatus(str, enum.Enum):
    NEW = "new"
    DRAFT_READY = "draft_ready"
    NEEDS_CLARIFICATION = "needs_clarification"
    SENT = "sent"
    WON = "won"
    LOST = "lost"


class ProjectType(str, enum.Enum):
    KITCHEN = "kitchen"
    BATHROOM = "bathroom"
    BASEMENT = "basement"
    FLOORING = "flooring"
    PAINTING = "painting"
    EXTERIOR = "exterior"
    OTHER = "other"


class FinishLevel(str, enum.Enum):
    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"


# Display names shared by the PDF, email subject and admin views
PROJECT_TYPE_LABELS = {
    "kitchen": "Kitchen Renovation",
    "bathroom": "Bathroom Renovation",
    "basement": "Basement Finishing",
    "flooring": "Flooring Installation",
    "painting": "Painting",
    "exterior": "Exterior Work",
    "other": "General Renovation",
}

# Short labels used in email subjects ("Your Kitchen Quote from ...")
PROJECT_TYPE_SHORT_LABELS = {
    "kitchen": "Kitchen",
    "bathroom": "Bathroom",
    "basement": "Basement",
    "flooring": "Flooring",
    "painting": "Painting",
    "exterior": "Exterior",
    "other": "Renovation",
}


def _uuid() -> str:
    return str(uuid.uuid4())


# --- Admin accounts ---

class User(Base):
    """Admin dashboard account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    auth_tokens = relationship("AuthToken", back_populates="user", cascade="all, delete-orphan")


class AuthToken(Base):
    """JWT refresh token storage: access tokens are stateless."""
    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    token_hash = Column(String, nullable=False)
    token_type = Column(String, default="refresh")
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="auth_tokens")


# --- Funnel ---

class Lead(Base):
    """A prospective customer's renovation inquiry."""
    __tablename__ = "leads"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String, nullable=True)
    province = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)

    project_type = Column(Enum(ProjectType), default=ProjectType.OTHER)
    area_sqft = Column(Float, nullable=True)
    finish_level = Column(Enum(FinishLevel), nullable=True)
    timeline = Column(String, nullable=True)
    budget_band = Column(String, nullable=True)
    goals_text = Column(Text, nullable=True)

    # AI-generated data
    chat_transcript = Column(JSON, nullable=True)
    scope_json = Column(JSON, nullable=True)
    quote_draft_json = Column(JSON, nullable=True)  # Rough estimate from the chat funnel
    confidence_score = Column(Float, nullable=True)
    ai_notes = Column(Text, nullable=True)
    uploaded_photos = Column(JSON, nullable=True)

    # Tracking
    session_id = Column(String, nullable=True)
    utm_source = Column(String, nullable=True)
    utm_medium = Column(String, nullable=True)
    utm_campaign = Column(String, nullable=True)

    status = Column(Enum(LeadStatus), default=LeadStatus.NEW)
    source = Column(String, default="ai_chat")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_contacted_at = Column(DateTime, nullable=True)

    quote_drafts = relationship(
        "QuoteDraft", back_populates="lead", cascade="all, delete-orphan",
        order_by="QuoteDraft.version",
    )
    audit_entries = relationship("AuditLog", back_populates="lead", cascade="all, delete-orphan")


class QuoteDraft(Base):
    """Versioned, editable quote for a lead. Each save creates a new version."""
    __tablename__ = "quote_drafts"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(String, ForeignKey("leads.id"), nullable=False)
    version = Column(Integer, default=1)

    line_items = Column(JSON, default=list)
    assumptions = Column(JSON, default=list)
    exclusions = Column(JSON, default=list)

    contingency_percent = Column(Float, nullable=False)
    tax_percent = Column(Float, nullable=False)
    deposit_percent = Column(Float, nullable=False)
    validity_days = Column(Integer, nullable=False)

    # Snapshots for list views: recomputed from line_items on every read
    subtotal = Column(Float, default=0.0)
    total = Column(Float, default=0.0)

    expires_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    sent_to_email = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lead = relationship("Lead", back_populates="quote_drafts")


class Visualization(Base):
    """AI design visualization generated from a customer's room photo."""
    __tablename__ = "visualizations"

    id = Column(String, primary_key=True, default=_uuid)
    original_photo_url = Column(Text, nullable=False)
    room_type = Column(String, nullable=False)
    style = Column(String, nullable=False)
    constraints = Column(Text, nullable=True)
    design_intent = Column(JSON, nullable=True)
    generated_concepts = Column(JSON, default=list)
    generation_time_ms = Column(Integer, nullable=True)
    share_token = Column(String, unique=True, nullable=False)
    source = Column(String, default="visualizer")
    device_type = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ChatSession(Base):
    """Estimate chat conversation state."""
    __tablename__ = "chat_sessions"

    id = Column(String, primary_key=True, default=_uuid)
    state = Column(String, default="active")  # 'active' | 'completed' | 'abandoned'
    messages_json = Column(JSON, default=list)
    extracted_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    """Append-only record of lead lifecycle actions."""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(String, ForeignKey("leads.id"), nullable=True)
    action = Column(String, nullable=False)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    lead = relationship("Lead", back_populates="audit_entries")
