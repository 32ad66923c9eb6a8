"""
Design preferences and the design-intent merge.

A customer's visual preferences arrive from three places during a visualizer
session: the free-text box, the AI summary of their voice conversation, and a
structured intent object. merge_design_intent() folds them into one DesignIntent
that drives the image-generation prompt.

Merge order is text -> voice-extracted -> explicit intent. Within each output
field the first occurrence of a string wins (exact, case-sensitive match) and
later duplicates are dropped.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RoomType(str, Enum):
    KITCHEN = "kitchen"
    BATHROOM = "bathroom"
    LIVING_ROOM = "living_room"
    BEDROOM = "bedroom"
    BASEMENT = "basement"
    DINING_ROOM = "dining_room"
    EXTERIOR = "exterior"
    OTHER = "other"


class DesignStyle(str, Enum):
    MODERN = "modern"
    TRADITIONAL = "traditional"
    FARMHOUSE = "farmhouse"
    INDUSTRIAL = "industrial"
    MINIMALIST = "minimalist"
    CONTEMPORARY = "contemporary"
    OTHER = "other"


class _CamelModel(BaseModel):
    # Browser client sends camelCase; Python code uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VoiceTranscriptEntry(_CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class VoiceExtractedPreferences(_CamelModel):
    desired_changes: list[str] = []
    material_preferences: list[str] = []
    style_indicators: list[str] = []  # informational only: never merged
    preservation_notes: list[str] = []


class VoiceSummaryResponse(_CamelModel):
    summary: str
    extracted_preferences: VoiceExtractedPreferences


class DesignIntent(_CamelModel):
    desired_changes: list[str] = []
    constraints_to_preserve: list[str] = []
    material_preferences: list[str] = []


class DesignPreferences(_CamelModel):
    """Snapshot of everything the customer told us about the room they want."""

    room_type: RoomType
    custom_room_type: Optional[str] = Field(default=None, max_length=100)
    style: DesignStyle
    custom_style: Optional[str] = None
    text_preferences: str = Field(default="", max_length=500)
    voice_transcript: list[VoiceTranscriptEntry] = []
    voice_preferences_summary: Optional[str] = None
    voice_extracted_preferences: Optional[VoiceExtractedPreferences] = None
    design_intent: Optional[DesignIntent] = None


def _dedupe(values: Iterable[str]) -> list[str]:
    """Keep the first occurrence of each string, in order."""
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def merge_design_intent(preferences: DesignPreferences) -> DesignIntent:
    """Merge text, voice-extracted and explicit intent into one deduplicated DesignIntent."""
    desired_changes: list[str] = []
    constraints: list[str] = []
    materials: list[str] = []

    text = preferences.text_preferences.strip()
    if text:
        desired_changes.append(text)

    voice = preferences.voice_extracted_preferences
    if voice:
        desired_changes.extend(voice.desired_changes)
        materials.extend(voice.material_preferences)
        constraints.extend(voice.preservation_notes)

    intent = preferences.design_intent
    if intent:
        desired_changes.extend(intent.desired_changes)
        constraints.extend(intent.constraints_to_preserve)
        materials.extend(intent.material_preferences)

    return DesignIntent(
        desired_changes=_dedupe(desired_changes),
        constraints_to_preserve=_dedupe(constraints),
        material_preferences=_dedupe(materials),
    )


def get_room_type_label(preferences: DesignPreferences) -> str:
    if preferences.room_type == RoomType.OTHER:
        return preferences.custom_room_type or "Custom Room"
    return preferences.room_type.value.replace("_", " ")


def get_style_label(preferences: DesignPreferences) -> str:
    if preferences.style == DesignStyle.OTHER:
        return preferences.custom_style or "Custom Style"
    value = preferences.style.value
    return value[:1].upper() + value[1:]


def build_constraints_text(intent: DesignIntent) -> str:
    """Render a merged intent as the user-preferences paragraph of an image prompt."""
    sections = []
    if intent.desired_changes:
        sections.append("Desired changes: " + "; ".join(intent.desired_changes))
    if intent.material_preferences:
        sections.append("Preferred materials: " + "; ".join(intent.material_preferences))
    if intent.constraints_to_preserve:
        sections.append("Keep unchanged: " + "; ".join(intent.constraints_to_preserve))
    return "\n".join(sections)
