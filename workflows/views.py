"""Presentational sub-views for the itinerary planner.

Every function here is a pure renderer: it turns conversation data into a
small pydantic view model that a front end (the Streamlit app, or any JSON
client of the API) can draw, and :func:`to_markdown` turns those models into
text for chat-style surfaces.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from workflows.conversation import TEXT_INPUT_STEPS
from workflows.state import (
    ITINERARY_VISIBLE_STEPS,
    Budget,
    ConversationState,
    ConversationStep,
    DeliveryChannel,
    Itinerary,
    ItineraryDay,
    SuggestionSet,
)

Translate = Callable[..., str]


# ============================================================================
# View models
# ============================================================================

class PickerOption(BaseModel):
    item_id: str
    activity: str
    business_name: str
    details: str
    category: str
    checked: bool = False


class PickerDay(BaseModel):
    day_number: int
    heading: str
    options: List[PickerOption] = Field(default_factory=list)


class SuggestionPickerView(BaseModel):
    kind: Literal["suggestion_picker"] = "suggestion_picker"
    title: str
    days: List[PickerDay] = Field(default_factory=list)
    confirm_label: str
    confirm_enabled: bool = False


class DayEntry(BaseModel):
    item_id: str
    time: str
    activity: str
    subtitle: str
    details: str


class DayView(BaseModel):
    kind: Literal["day"] = "day"
    day_number: int
    heading: str
    theme: str
    entries: List[DayEntry] = Field(default_factory=list)


class ItineraryDisplayView(BaseModel):
    kind: Literal["itinerary"] = "itinerary"
    title: str
    days: List[DayView] = Field(default_factory=list)
    modify_label: str


class PlaceholderView(BaseModel):
    kind: Literal["placeholder"] = "placeholder"
    title: str
    body: str


class GeneratingView(BaseModel):
    kind: Literal["generating"] = "generating"
    message: str


ContentPanel = Union[SuggestionPickerView, ItineraryDisplayView, PlaceholderView, GeneratingView]


class ControlButton(BaseModel):
    label: str
    event: Dict[str, Any]


class InputControls(BaseModel):
    """What the traveler can do next: press one of ``buttons`` or type text."""

    mode: Literal["buttons", "text", "none"]
    buttons: List[ControlButton] = Field(default_factory=list)
    placeholder: Optional[str] = None
    input_type: Literal["text", "number"] = "text"
    disabled: bool = False


# ============================================================================
# Renderers
# ============================================================================

def suggestion_picker(suggestions: SuggestionSet, selection: Iterable[str], t: Translate) -> SuggestionPickerView:
    """One checkbox-like option per suggestion, checked when its id is selected."""
    chosen = set(selection)
    days = [
        PickerDay(
            day_number=day.day_number,
            heading=t("itinerary_day_heading", {"day": day.day_number}),
            options=[
                PickerOption(
                    item_id=item.id,
                    activity=item.activity,
                    business_name=item.business_name,
                    details=item.details,
                    category=item.category.value,
                    checked=item.id in chosen,
                )
                for item in day.options
            ],
        )
        for day in suggestions.days
    ]
    return SuggestionPickerView(
        title=suggestions.title,
        days=days,
        confirm_label=t("create_my_itinerary"),
        confirm_enabled=bool(chosen),
    )


def itinerary_day_view(day: ItineraryDay, t: Translate) -> DayView:
    day_label = t("itinerary_day_heading", {"day": day.day_number})
    return DayView(
        day_number=day.day_number,
        heading=f"{day_label}: {day.title}",
        theme=day.theme,
        entries=[
            DayEntry(
                item_id=item.id,
                time=item.time,
                activity=item.activity,
                subtitle=" - ".join(part for part in (item.business_name, item.location) if part),
                details=item.details,
            )
            for item in day.items
        ],
    )


def itinerary_display(itinerary: Itinerary, t: Translate) -> ItineraryDisplayView:
    return ItineraryDisplayView(
        title=itinerary.title,
        days=[itinerary_day_view(day, t) for day in itinerary.days],
        modify_label=t("modify_selections"),
    )


def itinerary_placeholder(t: Translate) -> PlaceholderView:
    return PlaceholderView(title=t("itinerary_placeholder_title"), body=t("itinerary_placeholder_body"))


def content_panel(state: ConversationState, t: Translate) -> ContentPanel:
    """Pick the panel shown next to the chat for the current step."""
    if state.step in ITINERARY_VISIBLE_STEPS and state.itinerary is not None:
        return itinerary_display(state.itinerary, t)
    if state.step == ConversationStep.SELECTION and state.suggestions is not None:
        return suggestion_picker(state.suggestions, state.selection, t)
    if state.pending and state.step == ConversationStep.GENERATE_SUGGESTIONS:
        return GeneratingView(message=t("itinerary_generating"))
    return itinerary_placeholder(t)


def input_controls(state: ConversationState, t: Translate) -> InputControls:
    step = state.step
    if step == ConversationStep.PROMPT_ACTION:
        return InputControls(
            mode="buttons",
            disabled=state.pending,
            buttons=[
                ControlButton(label=t("itinerary_option_create"), event={"type": "action", "action": "create"}),
                ControlButton(label=t("itinerary_option_learn"), event={"type": "action", "action": "learn"}),
            ],
        )
    if step == ConversationStep.GET_BUDGET:
        return InputControls(
            mode="buttons",
            buttons=[
                ControlButton(label=t(f"itinerary_budget_{budget.value}"), event={"type": "budget", "budget": budget.value})
                for budget in Budget
            ],
        )
    if step == ConversationStep.PROMPT_DELIVERY:
        labels = {
            DeliveryChannel.EMAIL: "itinerary_email_button",
            DeliveryChannel.WHATSAPP: "itinerary_whatsapp_button",
            DeliveryChannel.NONE: "itinerary_no_thanks_button",
        }
        return InputControls(
            mode="buttons",
            buttons=[
                ControlButton(label=t(key), event={"type": "delivery", "channel": channel.value})
                for channel, key in labels.items()
            ],
        )
    if step == ConversationStep.FINISHED:
        return InputControls(
            mode="buttons",
            buttons=[ControlButton(label=t("itinerary_restart"), event={"type": "restart"})],
        )
    if step in (ConversationStep.SELECTION, ConversationStep.DISPLAY_FINAL):
        return InputControls(mode="none")
    return InputControls(
        mode="text",
        placeholder=t("itinerary_input_placeholder"),
        input_type="number" if step == ConversationStep.GET_DURATION else "text",
        disabled=state.pending or step not in TEXT_INPUT_STEPS,
    )


# ============================================================================
# Markdown
# ============================================================================

def to_markdown(view: BaseModel) -> str:
    if isinstance(view, SuggestionPickerView):
        lines = [f"## {view.title}"]
        for day in view.days:
            lines.append("")
            lines.append(f"### {day.heading}")
            for option in day.options:
                mark = "x" if option.checked else " "
                lines.append(f"- [{mark}] **{option.activity}** ({option.category}) - {option.business_name}")
                if option.details:
                    lines.append(f"  {option.details}")
        return "\n".join(lines)

    if isinstance(view, DayView):
        lines = [f"### {view.heading}"]
        if view.theme:
            lines.append(f"*{view.theme}*")
        for entry in view.entries:
            lines.append(f"- **{entry.time}** {entry.activity}")
            if entry.subtitle:
                lines.append(f"  {entry.subtitle}")
            if entry.details:
                lines.append(f"  {entry.details}")
        return "\n".join(lines)

    if isinstance(view, ItineraryDisplayView):
        sections = [f"## {view.title}"] + [to_markdown(day) for day in view.days]
        return "\n\n".join(sections)

    if isinstance(view, PlaceholderView):
        return f"## {view.title}\n\n{view.body}"

    if isinstance(view, GeneratingView):
        return f"_{view.message}_"

    raise TypeError(f"No Markdown rendering for {type(view).__name__}")
