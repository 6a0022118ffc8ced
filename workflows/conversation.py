"""Itinerary conversation orchestration.

This module exposes :class:`ItineraryConversation`, the state machine behind
the itinerary planner chat. It collects the traveler's interests, trip length
and budget, asks the Suggestion Generator for candidate activities, lets the
traveler pick among them, assembles the final itinerary and optionally
captures an email address or WhatsApp number to deliver it to.

The controller is a transition function: :meth:`ItineraryConversation.dispatch`
takes a :class:`~workflows.state.ConversationState` and an event and returns a
new state, never mutating the one it was given. Observers (a web socket, the
HTTP runtime, a test) can subscribe with :meth:`add_listener` to see every
intermediate state, including the ``generate_suggestions`` step while the
generator is running.

Flow::

    start -> prompt_action -> get_interests -> get_duration -> get_budget
          -> generate_suggestions -> selection -> display_final
          -> prompt_delivery -> (get_email | get_phone) -> finished

``learn`` loops on ``prompt_action``; ``modify`` returns to ``selection``;
``restart`` and a failed generation go back to ``start``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from config import (
    DELIVERY_PROMPT_DELAY_SECONDS,
    MAX_TRIP_DAYS,
    MIN_TRIP_DAYS,
    SUGGESTION_TIMEOUT_SECONDS,
    TOWN_NAME,
)
from workflows.events import (
    ChooseAction,
    ChooseBudget,
    ChooseDelivery,
    ConfirmSelection,
    ConversationEvent,
    ModifySelections,
    Restart,
    ToggleItem,
    UserMessage,
)
from workflows.selection import derive_itinerary, toggle_item
from workflows.state import (
    ITINERARY_VISIBLE_STEPS,
    Budget,
    ConversationState,
    ConversationStep,
    DeliveryChannel,
    SuggestionSet,
)
from workflows.translations import Translator

logger = logging.getLogger(__name__)

SuggestionGenerator = Callable[
    [str, Budget, int],
    Union[Optional[SuggestionSet], Awaitable[Optional[SuggestionSet]]],
]
TownInfoSource = Callable[[], Union[str, Awaitable[str]]]
StateListener = Callable[[ConversationState], None]

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
_INTEGER_PATTERN = re.compile(r"[+-]?\d+")

# Steps that accept free text from the chat input
TEXT_INPUT_STEPS = frozenset(
    {
        ConversationStep.GET_INTERESTS,
        ConversationStep.GET_DURATION,
        ConversationStep.GET_EMAIL,
        ConversationStep.GET_PHONE,
    }
)


class InvalidTransitionError(ValueError):
    """Raised when an event is not accepted in the conversation's current step."""


def parse_duration(text: str, minimum: int = MIN_TRIP_DAYS, maximum: int = MAX_TRIP_DAYS) -> Optional[int]:
    """Return the trip length in days, or ``None`` unless ``text`` is an integer in range."""
    candidate = (text or "").strip()
    if not _INTEGER_PATTERN.fullmatch(candidate):
        return None
    days = int(candidate)
    if minimum <= days <= maximum:
        return days
    return None


def is_valid_email(text: str) -> bool:
    return bool(EMAIL_PATTERN.search(text or ""))


def is_valid_phone(text: str) -> bool:
    return bool(PHONE_PATTERN.match(text or ""))


async def _call_capability(func: Callable[..., Any], *args: Any, timeout: Optional[float] = None) -> Any:
    """Invoke a sync or async capability, bounded by ``timeout`` seconds when set."""
    if inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(getattr(func, "__call__", None)):
        awaitable = func(*args)
    else:
        awaitable = asyncio.to_thread(func, *args)

    if timeout:
        result = await asyncio.wait_for(awaitable, timeout)
    else:
        result = await awaitable

    if inspect.isawaitable(result):
        result = await (asyncio.wait_for(result, timeout) if timeout else result)
    return result


class ItineraryConversation:
    """Drive the itinerary planning dialogue one event at a time."""

    def __init__(
        self,
        suggestion_generator: SuggestionGenerator,
        town_info: TownInfoSource,
        translator: Optional[Callable[..., str]] = None,
        *,
        suggestion_timeout: Optional[float] = SUGGESTION_TIMEOUT_SECONDS,
        delivery_prompt_delay: float = DELIVERY_PROMPT_DELAY_SECONDS,
        min_days: int = MIN_TRIP_DAYS,
        max_days: int = MAX_TRIP_DAYS,
        town: str = TOWN_NAME,
        listeners: Optional[List[StateListener]] = None,
    ) -> None:
        self.suggestion_generator = suggestion_generator
        self.town_info = town_info
        self.t = translator or Translator()
        self.suggestion_timeout = suggestion_timeout or None
        self.delivery_prompt_delay = max(0.0, delivery_prompt_delay)
        self.min_days = min_days
        self.max_days = max_days
        self.town = town
        self.listeners: List[StateListener] = list(listeners or [])

        self._handlers: Dict[type, Callable[[ConversationState, Any], Awaitable[ConversationState]]] = {
            UserMessage: self._on_message,
            ChooseAction: self._on_action,
            ChooseBudget: self._on_budget,
            ToggleItem: self._on_toggle,
            ConfirmSelection: self._on_confirm,
            ModifySelections: self._on_modify,
            ChooseDelivery: self._on_delivery,
            Restart: self._on_restart,
        }

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------
    def add_listener(self, listener: StateListener) -> None:
        self.listeners.append(listener)

    def initial_state(self, session_id: Optional[str] = None) -> ConversationState:
        """Create a brand-new conversation in the ``start`` step."""

        language = getattr(self.t, "language", None)
        fields: Dict[str, Any] = {}
        if session_id:
            fields["session_id"] = session_id
        if language:
            fields["language"] = language
        return ConversationState(**fields)

    def start(self, state: ConversationState) -> ConversationState:
        """Run the ``start`` entry action: greet, then offer the two choices."""

        self._require(state, ConversationStep.START)
        state = state.say(self.t("itinerary_greeting_new"))
        return self._emit(state.model_copy(update={"step": ConversationStep.PROMPT_ACTION}))

    def restart(self, state: ConversationState) -> ConversationState:
        """Discard everything but the session id and return to ``start``."""

        return self._emit(self.initial_state(session_id=state.session_id))

    # ------------------------------------------------------------------
    # Public workflow API
    # ------------------------------------------------------------------
    async def dispatch(self, state: ConversationState, event: ConversationEvent) -> ConversationState:
        """Apply ``event`` and run any automatic transitions that follow it."""

        if state.pending and not isinstance(event, Restart):
            raise InvalidTransitionError("A request is already in progress for this conversation.")

        handler = self._handlers.get(type(event))
        if handler is None:
            raise InvalidTransitionError(f"Unsupported event: {type(event).__name__}")

        state = await handler(state, event)
        return await self._run_automatic(state)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    async def _on_message(self, state: ConversationState, event: UserMessage) -> ConversationState:
        text = event.text.strip()
        if not text:
            return state
        if state.step not in TEXT_INPUT_STEPS:
            raise InvalidTransitionError(f"Free text is not accepted in step '{state.step.value}'.")

        state = state.echo(text)

        if state.step == ConversationStep.GET_INTERESTS:
            preferences = state.preferences.model_copy(update={"interests": text})
            state = state.say(self.t("itinerary_ask_duration"))
            return self._emit(state.model_copy(update={
                "preferences": preferences,
                "step": ConversationStep.GET_DURATION,
            }))

        if state.step == ConversationStep.GET_DURATION:
            duration = parse_duration(text, self.min_days, self.max_days)
            if duration is None:
                message = self.t("itinerary_invalid_duration", {"min": self.min_days, "max": self.max_days})
                return self._emit(state.say(message))
            preferences = state.preferences.model_copy(update={"duration": duration})
            state = state.say(self.t("itinerary_ask_budget"))
            return self._emit(state.model_copy(update={
                "preferences": preferences,
                "step": ConversationStep.GET_BUDGET,
            }))

        if state.step == ConversationStep.GET_EMAIL:
            if not is_valid_email(text):
                return self._emit(state.say(self.t("itinerary_invalid_email")))
            return self._emit(self._confirm_delivery(state, text))

        # GET_PHONE
        if not is_valid_phone(text):
            return self._emit(state.say(self.t("itinerary_invalid_phone")))
        return self._emit(self._confirm_delivery(state, text))

    async def _on_action(self, state: ConversationState, event: ChooseAction) -> ConversationState:
        self._require(state, ConversationStep.PROMPT_ACTION)

        if event.action == "create":
            state = state.echo(self.t("itinerary_option_create"))
            state = state.say(self.t("itinerary_greeting_start"))
            return self._emit(state.model_copy(update={"step": ConversationStep.GET_INTERESTS}))

        state = state.echo(self.t("itinerary_option_learn"))
        state = self._emit(state.model_copy(update={"pending": True}))
        info = await self._fetch_town_info()
        state = state.model_copy(update={"pending": False})
        state = state.say(info).say(self.t("itinerary_greeting_new"))
        return self._emit(state)

    async def _on_budget(self, state: ConversationState, event: ChooseBudget) -> ConversationState:
        self._require(state, ConversationStep.GET_BUDGET)

        budget = Budget(event.budget)
        state = state.echo(self.t(f"itinerary_budget_{budget.value}"))
        preferences = state.preferences.model_copy(update={"budget": budget})
        state = state.model_copy(update={
            "preferences": preferences,
            "step": ConversationStep.GENERATE_SUGGESTIONS,
        })
        return await self._generate_suggestions(state)

    async def _on_toggle(self, state: ConversationState, event: ToggleItem) -> ConversationState:
        self._require(state, ConversationStep.SELECTION)
        if state.suggestions is None or event.item_id not in state.suggestions.item_ids():
            raise InvalidTransitionError(f"Unknown suggestion item: {event.item_id}")

        selection = toggle_item(state.selection, event.item_id)
        return self._emit(state.model_copy(update={"selection": selection}))

    async def _on_confirm(self, state: ConversationState, event: ConfirmSelection) -> ConversationState:
        self._require(state, ConversationStep.SELECTION)
        if state.suggestions is None or not state.selection:
            raise InvalidTransitionError("Select at least one activity before creating the itinerary.")

        itinerary = derive_itinerary(
            state.suggestions,
            state.selection,
            theme=state.preferences.interests,
            translate=self.t,
        )
        return self._emit(state.model_copy(update={
            "itinerary": itinerary,
            "step": ConversationStep.DISPLAY_FINAL,
        }))

    async def _on_modify(self, state: ConversationState, event: ModifySelections) -> ConversationState:
        self._require(state, *ITINERARY_VISIBLE_STEPS)
        return self._emit(state.model_copy(update={
            "itinerary": None,
            "contact": None,
            "delivery_channel": None,
            "step": ConversationStep.SELECTION,
        }))

    async def _on_delivery(self, state: ConversationState, event: ChooseDelivery) -> ConversationState:
        self._require(state, ConversationStep.PROMPT_DELIVERY)

        channel = DeliveryChannel(event.channel)
        if channel == DeliveryChannel.EMAIL:
            state = state.echo(self.t("itinerary_email_button")).say(self.t("itinerary_ask_email"))
            next_step = ConversationStep.GET_EMAIL
        elif channel == DeliveryChannel.WHATSAPP:
            state = state.echo(self.t("itinerary_whatsapp_button")).say(self.t("itinerary_ask_phone"))
            next_step = ConversationStep.GET_PHONE
        else:
            state = state.echo(self.t("itinerary_no_thanks_button")).say(self.t("itinerary_delivery_finished"))
            next_step = ConversationStep.FINISHED

        return self._emit(state.model_copy(update={"delivery_channel": channel, "step": next_step}))

    async def _on_restart(self, state: ConversationState, event: Restart) -> ConversationState:
        return self.restart(state)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _run_automatic(self, state: ConversationState) -> ConversationState:
        """Advance through the steps that need no user input."""

        while True:
            if state.step == ConversationStep.START:
                state = self.start(state)
            elif state.step == ConversationStep.DISPLAY_FINAL:
                if self.delivery_prompt_delay:
                    await asyncio.sleep(self.delivery_prompt_delay)
                state = state.say(self.t("itinerary_finalized_prompt_delivery"))
                state = self._emit(state.model_copy(update={"step": ConversationStep.PROMPT_DELIVERY}))
            else:
                return state

    async def _generate_suggestions(self, state: ConversationState) -> ConversationState:
        preferences = state.preferences
        state = state.say(self.t("itinerary_generating"))
        state = self._emit(state.model_copy(update={"pending": True}))

        suggestions = await self._request_suggestions(
            preferences.interests, preferences.budget, preferences.duration
        )
        state = state.model_copy(update={"pending": False})

        if suggestions is None:
            # Start over rather than retry in place; the greeting follows via _run_automatic
            state = self.restart(state)
            return self._emit(state.say(self.t("itinerary_generation_failed")))

        state = state.say(self.t("itinerary_selection_instruction"))
        return self._emit(state.model_copy(update={
            "suggestions": suggestions,
            "selection": [],
            "itinerary": None,
            "step": ConversationStep.SELECTION,
        }))

    async def _request_suggestions(self, interests: str, budget: Optional[Budget], duration: int) -> Optional[SuggestionSet]:
        try:
            result = await _call_capability(
                self.suggestion_generator, interests, budget, duration, timeout=self.suggestion_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Suggestion generation timed out after {self.suggestion_timeout}s")
            return None
        except Exception as e:
            logger.error(f"Suggestion generator raised: {e}")
            return None

        if result is None:
            logger.warning("Suggestion generator returned no result")
            return None
        try:
            return SuggestionSet.from_payload(result)
        except (ValidationError, ValueError) as e:
            logger.error(f"Suggestion generator returned an invalid payload: {e}")
            return None

    async def _fetch_town_info(self) -> str:
        fallback = self.t("itinerary_town_info_fallback", {"town": self.town})
        try:
            info = await _call_capability(self.town_info, timeout=self.suggestion_timeout)
        except Exception as e:
            logger.warning(f"Town info unavailable, using fallback text: {e}")
            return fallback
        text = str(info or "").strip()
        return text or fallback

    def _confirm_delivery(self, state: ConversationState, contact: str) -> ConversationState:
        state = state.say(self.t("itinerary_final_confirmation", {"contact_info": contact}))
        return state.model_copy(update={"contact": contact, "step": ConversationStep.FINISHED})

    def _require(self, state: ConversationState, *steps: ConversationStep) -> None:
        if state.step not in steps:
            expected = ", ".join(step.value for step in steps)
            raise InvalidTransitionError(
                f"Event not accepted in step '{state.step.value}' (expected {expected})."
            )

    def _emit(self, state: ConversationState) -> ConversationState:
        for listener in self.listeners:
            listener(state)
        return state
