"""Typed state models shared across the itinerary planner conversation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from config import DEFAULT_LANGUAGE, DEFAULT_TRIP_DAYS


class Budget(str, Enum):
    BUDGET_FRIENDLY = "budget-friendly"
    MODERATE = "moderate"
    LUXURY = "luxury"


class Category(str, Enum):
    ACTIVITY = "activity"
    DINING = "dining"
    SIGHTSEEING = "sightseeing"


class DeliveryChannel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    NONE = "none"


class ConversationStep(str, Enum):
    """Every step the itinerary conversation can be in."""

    START = "start"
    PROMPT_ACTION = "prompt_action"
    GET_INTERESTS = "get_interests"
    GET_DURATION = "get_duration"
    GET_BUDGET = "get_budget"
    GENERATE_SUGGESTIONS = "generate_suggestions"
    SELECTION = "selection"
    DISPLAY_FINAL = "display_final"
    PROMPT_DELIVERY = "prompt_delivery"
    GET_EMAIL = "get_email"
    GET_PHONE = "get_phone"
    FINISHED = "finished"


# Steps in which the finished itinerary is on screen and can be modified
ITINERARY_VISIBLE_STEPS = frozenset(
    {
        ConversationStep.DISPLAY_FINAL,
        ConversationStep.PROMPT_DELIVERY,
        ConversationStep.GET_EMAIL,
        ConversationStep.GET_PHONE,
        ConversationStep.FINISHED,
    }
)


# ============================================================================
# Preferences
# ============================================================================

class Preferences(BaseModel):
    """Travel preferences collected one turn at a time."""

    interests: str = ""
    duration: int = DEFAULT_TRIP_DAYS
    budget: Optional[Budget] = None


# ============================================================================
# Suggestions returned by the generator
# ============================================================================

class SuggestionItem(BaseModel):
    """A single candidate activity. ``id`` may be blank until the parent set fills it."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    time: str = ""
    activity: str = ""
    business_name: str = Field("", validation_alias=AliasChoices("business_name", "businessName"))
    location: str = ""
    details: str = ""
    category: Category = Field(Category.ACTIVITY, validation_alias=AliasChoices("category", "type"))

    @field_validator("id", "time", "activity", "business_name", "location", "details", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> Category:
        if isinstance(v, Category):
            return v
        normalized = str(v or "").strip().lower()
        try:
            return Category(normalized)
        except ValueError:
            return Category.ACTIVITY


# Items keep their generator shape once they make it into an itinerary
ItineraryItem = SuggestionItem


class SuggestionDay(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day_number: int = Field(ge=1, validation_alias=AliasChoices("day_number", "day", "dayNumber"))
    options: List[SuggestionItem] = Field(default_factory=list)


class SuggestionSet(BaseModel):
    """The full candidate itinerary as produced by the Suggestion Generator."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    duration: int = 0
    days: List[SuggestionDay] = Field(
        default_factory=list, validation_alias=AliasChoices("days", "suggestions")
    )

    @model_validator(mode="after")
    def _fill_gaps(self) -> "SuggestionSet":
        supplied = [item.id for day in self.days for item in day.options if item.id]
        duplicates = sorted({item_id for item_id in supplied if supplied.count(item_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate suggestion ids: {', '.join(duplicates)}")

        # Synthesized ids must not shadow an id the generator chose
        taken = set(supplied)
        for day in self.days:
            for index, item in enumerate(day.options):
                if item.id:
                    continue
                candidate = f"d{day.day_number}i{index}"
                suffix = 1
                while candidate in taken:
                    candidate = f"d{day.day_number}i{index}-{suffix}"
                    suffix += 1
                item.id = candidate
                taken.add(candidate)
        if self.duration < 1:
            self.duration = len(self.days)
        return self

    @classmethod
    def from_payload(cls, payload: Any) -> "SuggestionSet":
        """Validate raw generator JSON, synthesizing any missing item ids."""
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object for suggestions, got {type(payload).__name__}")
        return cls.model_validate(payload)

    def item_ids(self) -> List[str]:
        return [item.id for day in self.days for item in day.options]

    def find_item(self, item_id: str) -> Optional[SuggestionItem]:
        for day in self.days:
            for item in day.options:
                if item.id == item_id:
                    return item
        return None


# ============================================================================
# Final itinerary
# ============================================================================

class ItineraryDay(BaseModel):
    day_number: int = Field(ge=1)
    title: str
    theme: str = ""
    items: List[ItineraryItem] = Field(default_factory=list)


class Itinerary(BaseModel):
    title: str
    duration: int
    days: List[ItineraryDay] = Field(default_factory=list)


# ============================================================================
# Conversation
# ============================================================================

class ChatTurn(BaseModel):
    speaker: Literal["user", "bot"]
    content: str


class ConversationState(BaseModel):
    """Single source of truth for one itinerary conversation.

    Instances are treated as values: the controller returns updated copies
    instead of mutating the state it was given.
    """

    session_id: str = Field(default_factory=lambda: uuid4().hex)
    language: str = DEFAULT_LANGUAGE
    step: ConversationStep = ConversationStep.START
    transcript: List[ChatTurn] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    suggestions: Optional[SuggestionSet] = None
    selection: List[str] = Field(default_factory=list)
    itinerary: Optional[Itinerary] = None
    delivery_channel: Optional[DeliveryChannel] = None
    contact: Optional[str] = None
    pending: bool = False

    def with_turn(self, speaker: Literal["user", "bot"], content: str) -> "ConversationState":
        turns = self.transcript + [ChatTurn(speaker=speaker, content=content)]
        return self.model_copy(update={"transcript": turns})

    def say(self, content: str) -> "ConversationState":
        """Append a bot message."""
        return self.with_turn("bot", content)

    def echo(self, content: str) -> "ConversationState":
        """Append a user message."""
        return self.with_turn("user", content)

    def bot_messages(self) -> List[str]:
        return [turn.content for turn in self.transcript if turn.speaker == "bot"]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
