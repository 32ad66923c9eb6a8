from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime
from .models import LeadStatus, ProjectType, FinishLevel
from .design_intent import DesignPreferences, DesignStyle, RoomType, VoiceTranscriptEntry
from .quote_totals import LineItem, Money

Timeline = Literal["asap", "1_3_months", "3_6_months", "6_plus_months", "just_exploring"]
BudgetBand = Literal["under_15k", "15k_25k", "25k_40k", "40k_60k", "60k_plus", "not_sure"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Leads ---

class ChatMessage(CamelModel):
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: Optional[datetime] = None

class LeadCreate(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    project_type: ProjectType
    area_sqft: Optional[float] = Field(default=None, gt=0)
    finish_level: Optional[FinishLevel] = None
    timeline: Optional[Timeline] = None
    budget_band: Optional[BudgetBand] = None
    goals_text: Optional[str] = Field(default=None, max_length=2000)
    chat_transcript: Optional[List[ChatMessage]] = None
    scope_json: Optional[dict] = None
    uploaded_photos: Optional[List[str]] = None
    confidence_score: Optional[float] = Field(default=None, ge=0, le=1)
    ai_notes: Optional[str] = None
    session_id: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

class LeadUpdate(CamelModel):
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None

class Lead(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    project_type: Optional[ProjectType] = None
    area_sqft: Optional[float] = None
    finish_level: Optional[FinishLevel] = None
    timeline: Optional[str] = None
    budget_band: Optional[str] = None
    goals_text: Optional[str] = None
    quote_draft_json: Optional[dict] = None
    confidence_score: Optional[float] = None
    status: LeadStatus
    source: Optional[str] = None
    notes: Optional[str] = None
    session_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_contacted_at: Optional[datetime] = None
    class Config:
        from_attributes = True


# --- Quotes ---

class QuoteDraftSave(BaseModel):
    line_items: List[LineItem] = []
    assumptions: List[str] = []
    exclusions: List[str] = []
    contingency_percent: Optional[Money] = Field(default=None, ge=0, le=100)
    deposit_percent: Optional[Money] = Field(default=None, ge=0, le=100)
    validity_days: Optional[int] = Field(default=None, ge=1, le=365)

class SendQuoteRequest(CamelModel):
    custom_message: Optional[str] = Field(default=None, max_length=500)
    recipient_email: Optional[EmailStr] = None


# --- AI ---

class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    session_id: Optional[str] = None

class VisualizationRequest(CamelModel):
    image: str = Field(min_length=1)
    room_type: RoomType
    style: DesignStyle
    constraints: Optional[str] = Field(default=None, max_length=1000)
    count: int = Field(default=4, ge=1, le=4)
    preferences: Optional[DesignPreferences] = None

class VoiceSummaryRequest(CamelModel):
    transcript: List[VoiceTranscriptEntry] = Field(min_length=1)
