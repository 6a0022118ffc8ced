"""Tests for the itinerary conversation state machine."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from conftest import FakeSuggestionGenerator, FakeTownInfo
from workflows.conversation import InvalidTransitionError, ItineraryConversation, parse_duration
from workflows.events import (
    ChooseAction,
    ChooseBudget,
    ChooseDelivery,
    ConfirmSelection,
    ModifySelections,
    Restart,
    ToggleItem,
    UserMessage,
)
from workflows.state import Budget, ConversationState, ConversationStep, Preferences


GREETING = "Hi, I'm Conch Shell, your friendly guide!"
APOLOGY = "I'm sorry, I couldn't generate an itinerary at this time. Please try again."


def run(coro):
    return asyncio.run(coro)


async def _walk_to_budget(conversation: ItineraryConversation, interests="beaches, food", duration="3"):
    state = conversation.start(conversation.initial_state())
    state = await conversation.dispatch(state, ChooseAction(action="create"))
    state = await conversation.dispatch(state, UserMessage(text=interests))
    return await conversation.dispatch(state, UserMessage(text=duration))


async def _walk_to_selection(conversation: ItineraryConversation):
    state = await _walk_to_budget(conversation)
    return await conversation.dispatch(state, ChooseBudget(budget="moderate"))


async def _walk_to_delivery(conversation: ItineraryConversation):
    state = await _walk_to_selection(conversation)
    state = await conversation.dispatch(state, ToggleItem(item_id="biz-1-day1-opt1"))
    return await conversation.dispatch(state, ConfirmSelection())


# ==================== START / ACTION ====================

def test_start_greets_and_offers_choices(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())

    assert state.step == ConversationStep.PROMPT_ACTION
    assert len(state.transcript) == 1
    assert state.transcript[0].speaker == "bot"
    assert state.transcript[0].content.startswith(GREETING)


def test_create_action_asks_for_interests(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())
    state = run(conversation.dispatch(state, ChooseAction(action="create")))

    assert state.step == ConversationStep.GET_INTERESTS
    assert state.transcript[-2].speaker == "user"
    assert state.transcript[-2].content == "Create Itinerary"
    assert "what kind of activities" in state.transcript[-1].content


def test_learn_action_shows_town_info_then_greets_again(make_conversation):
    town_info = FakeTownInfo("Gros-Islet was a fishing village first.")
    conversation = make_conversation(town_info=town_info)
    state = conversation.start(conversation.initial_state())
    state = run(conversation.dispatch(state, ChooseAction(action="learn")))

    assert town_info.calls == 1
    assert state.step == ConversationStep.PROMPT_ACTION
    assert not state.pending
    assert [turn.speaker for turn in state.transcript[-3:]] == ["user", "bot", "bot"]
    assert state.transcript[-3].content == "Learn About Town"
    assert state.transcript[-2].content == "Gros-Islet was a fishing village first."
    assert state.transcript[-1].content.startswith(GREETING)


def test_learn_action_uses_fallback_when_town_info_fails(make_conversation):
    conversation = make_conversation(town_info=FakeTownInfo(error=RuntimeError("quota")), town="Gros-Islet")
    state = conversation.start(conversation.initial_state())
    state = run(conversation.dispatch(state, ChooseAction(action="learn")))

    assert state.step == ConversationStep.PROMPT_ACTION
    assert "Friday Night Street Party" in state.transcript[-2].content
    assert state.transcript[-2].content.startswith("Gros-Islet")


# ==================== DURATION ====================

@pytest.mark.parametrize("days", list(range(1, 11)))
def test_valid_duration_advances_to_budget(make_conversation, days):
    conversation = make_conversation()
    state = run(_walk_to_budget(conversation, duration=str(days)))

    assert state.step == ConversationStep.GET_BUDGET
    assert state.preferences.duration == days
    assert state.preferences.interests == "beaches, food"


@pytest.mark.parametrize("text", ["0", "11", "15", "-2", "abc", "3.5", "three days"])
def test_invalid_duration_reprompts_in_place(make_conversation, text):
    conversation = make_conversation()
    state = run(_walk_to_budget(conversation, duration="oops"))
    assert state.step == ConversationStep.GET_DURATION
    before = len(state.bot_messages())

    state = run(conversation.dispatch(state, UserMessage(text=text)))

    assert state.step == ConversationStep.GET_DURATION
    assert len(state.bot_messages()) == before + 1
    assert "valid number of days (1-10)" in state.bot_messages()[-1]
    assert state.preferences.duration == Preferences().duration


def test_duration_fifteen_leaves_preferences_unchanged(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())
    state = run(conversation.dispatch(state, ChooseAction(action="create")))
    state = run(conversation.dispatch(state, UserMessage(text="hiking")))
    before = state

    state = run(conversation.dispatch(state, UserMessage(text="15")))

    assert state.step == ConversationStep.GET_DURATION
    assert len(state.transcript) == len(before.transcript) + 2
    assert state.transcript[-1].content == "Please enter a valid number of days (1-10)."
    assert state.preferences == before.preferences


def test_parse_duration_bounds():
    assert parse_duration(" 7 ") == 7
    assert parse_duration("10") == 10
    assert parse_duration("11") is None
    assert parse_duration("4", minimum=1, maximum=3) is None
    assert parse_duration("") is None


# ==================== GENERATION ====================

def test_happy_path_builds_itinerary_from_selected_items(make_conversation, suggestion_set):
    generator = FakeSuggestionGenerator(suggestion_set)
    conversation = make_conversation(generator=generator)

    state = run(_walk_to_selection(conversation))
    assert generator.calls == [("beaches, food", Budget.MODERATE, 3)]
    assert state.step == ConversationStep.SELECTION
    assert state.suggestions == suggestion_set
    assert state.selection == []
    assert state.transcript[-3].content == "Moderate"
    assert "finding the best local spots" in state.transcript[-2].content
    assert "select the activities" in state.transcript[-1].content

    # Toggle out of order; the itinerary follows the generator's order
    state = run(conversation.dispatch(state, ToggleItem(item_id="biz-3-day1-opt3")))
    state = run(conversation.dispatch(state, ToggleItem(item_id="biz-1-day1-opt1")))
    state = run(conversation.dispatch(state, ConfirmSelection()))

    assert state.step == ConversationStep.PROMPT_DELIVERY
    assert "How would you like to receive it?" in state.transcript[-1].content
    itinerary = state.itinerary
    assert itinerary is not None
    assert itinerary.title == "Sun, Sand and Saltfish"
    assert itinerary.duration == 3
    assert [day.day_number for day in itinerary.days] == [1]
    assert [item.id for item in itinerary.days[0].items] == ["biz-1-day1-opt1", "biz-3-day1-opt3"]
    assert itinerary.days[0].title == "Your Day 1 Adventure"
    assert itinerary.days[0].theme == "beaches, food"


def test_listeners_see_pending_generation_and_display_final(make_conversation, suggestion_set):
    seen: List[ConversationState] = []
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set), listeners=[seen.append])

    run(_walk_to_delivery(conversation))

    pending = [s for s in seen if s.step == ConversationStep.GENERATE_SUGGESTIONS]
    assert pending and all(s.pending for s in pending)
    steps = [s.step for s in seen]
    assert steps.index(ConversationStep.DISPLAY_FINAL) < steps.index(ConversationStep.PROMPT_DELIVERY)


def test_sync_generator_returning_raw_payload_is_accepted(make_conversation, suggestion_payload):
    calls = []

    def generator(interests, budget, duration):
        calls.append(duration)
        return suggestion_payload

    conversation = make_conversation(generator=generator)
    state = run(_walk_to_selection(conversation))

    assert calls == [3]
    assert state.step == ConversationStep.SELECTION
    assert state.suggestions.days[1].options[0].id == "d2i0"
    assert state.suggestions.days[1].options[1].id == "d2i1"


@pytest.mark.parametrize("result", [None, RuntimeError("model down"), {"title": "bad", "days": "nope"}])
def test_generation_failure_resets_to_start_with_apology(make_conversation, result):
    conversation = make_conversation(generator=FakeSuggestionGenerator(result))
    state = run(_walk_to_selection(conversation))

    assert state.step == ConversationStep.PROMPT_ACTION
    assert [turn.content for turn in state.transcript][0] == APOLOGY
    assert state.transcript[1].content.startswith(GREETING)
    assert len(state.transcript) == 2
    assert state.preferences == Preferences()
    assert state.suggestions is None
    assert state.selection == []
    assert state.itinerary is None
    assert not state.pending


def test_toggling_generator_id_selects_only_that_activity(make_conversation):
    payload = {"title": "Clash", "days": [{"day": 1, "options": [
        {"id": "d1i1", "activity": "A"},
        {"activity": "B"},
    ]}]}
    conversation = make_conversation(generator=FakeSuggestionGenerator(payload))
    state = run(_walk_to_selection(conversation))

    state = run(conversation.dispatch(state, ToggleItem(item_id="d1i1")))
    state = run(conversation.dispatch(state, ConfirmSelection()))

    assert [item.activity for item in state.itinerary.days[0].items] == ["A"]


def test_duplicate_generator_ids_take_failure_path(make_conversation):
    payload = {"title": "Dupes", "days": [{"day": 1, "options": [
        {"id": "x", "activity": "A"},
        {"id": "x", "activity": "B"},
    ]}]}
    conversation = make_conversation(generator=FakeSuggestionGenerator(payload))
    state = run(_walk_to_selection(conversation))

    assert state.step == ConversationStep.PROMPT_ACTION
    assert state.transcript[0].content == APOLOGY
    assert state.suggestions is None


def test_generation_timeout_takes_failure_path(make_conversation):
    async def slow_generator(interests, budget, duration):
        await asyncio.sleep(1)

    conversation = make_conversation(generator=slow_generator, suggestion_timeout=0.01)
    state = run(_walk_to_selection(conversation))

    assert state.step == ConversationStep.PROMPT_ACTION
    assert state.transcript[0].content == APOLOGY


# ==================== SELECTION ====================

def test_toggle_is_idempotent_per_id(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_selection(conversation))

    state = run(conversation.dispatch(state, ToggleItem(item_id="d2i0")))
    assert state.selection == ["d2i0"]
    state = run(conversation.dispatch(state, ToggleItem(item_id="d2i0")))
    assert state.selection == []


def test_toggle_unknown_item_is_rejected(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_selection(conversation))

    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, ToggleItem(item_id="missing")))


def test_confirm_requires_a_selection(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_selection(conversation))

    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, ConfirmSelection()))


def test_modify_discards_itinerary_and_keeps_selection(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    assert state.itinerary is not None

    state = run(conversation.dispatch(state, ModifySelections()))
    assert state.step == ConversationStep.SELECTION
    assert state.itinerary is None
    assert state.selection == ["biz-1-day1-opt1"]

    state = run(conversation.dispatch(state, ToggleItem(item_id="biz-6-day3-opt1")))
    state = run(conversation.dispatch(state, ConfirmSelection()))
    assert [day.day_number for day in state.itinerary.days] == [1, 3]


def test_modify_after_delivery_clears_contact(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="email")))
    state = run(conversation.dispatch(state, UserMessage(text="me@example.com")))
    assert state.contact == "me@example.com"

    state = run(conversation.dispatch(state, ModifySelections()))
    assert state.step == ConversationStep.SELECTION
    assert state.contact is None
    assert state.delivery_channel is None


# ==================== DELIVERY ====================

@pytest.mark.parametrize("email", ["traveler@example.com", "a@b.co", "Sam <sam@islet.lc>"])
def test_valid_email_finishes_with_confirmation(make_conversation, suggestion_set, email):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="email")))
    assert state.step == ConversationStep.GET_EMAIL

    state = run(conversation.dispatch(state, UserMessage(text=email)))

    assert state.step == ConversationStep.FINISHED
    assert state.contact == email
    assert email in state.transcript[-1].content
    assert state.transcript[-1].content.startswith("All set!")


@pytest.mark.parametrize("email", ["not-an-email", "x@y", "@.", "a@b."])
def test_invalid_email_reprompts(make_conversation, suggestion_set, email):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="email")))

    state = run(conversation.dispatch(state, UserMessage(text=email)))

    assert state.step == ConversationStep.GET_EMAIL
    assert state.contact is None
    assert "valid email" in state.transcript[-1].content


@pytest.mark.parametrize("phone,valid", [
    ("+17585551234", True),
    ("17585551234", True),
    ("0123", False),
    ("+", False),
    ("+1 758 555", False),
])
def test_phone_validation(make_conversation, suggestion_set, phone, valid):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="whatsapp")))
    assert state.step == ConversationStep.GET_PHONE

    state = run(conversation.dispatch(state, UserMessage(text=phone)))

    if valid:
        assert state.step == ConversationStep.FINISHED
        assert phone in state.transcript[-1].content
    else:
        assert state.step == ConversationStep.GET_PHONE
        assert "valid phone number" in state.transcript[-1].content


def test_declining_delivery_finishes(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="none")))

    assert state.step == ConversationStep.FINISHED
    assert state.transcript[-2].content == "No, thanks"
    assert "anything else" in state.transcript[-1].content
    assert state.contact is None


# ==================== RESTART / GUARDS ====================

def test_restart_from_any_step_clears_everything(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set, suggestion_set))
    selection_state = run(_walk_to_selection(conversation))
    delivery_state = run(_walk_to_delivery(conversation))

    for state in (selection_state, delivery_state):
        reset = conversation.restart(state)
        assert reset.step == ConversationStep.START
        assert reset.transcript == []
        assert reset.preferences == Preferences()
        assert reset.suggestions is None
        assert reset.selection == []
        assert reset.itinerary is None
        assert reset.session_id == state.session_id


def test_restart_event_greets_again(make_conversation, suggestion_set):
    conversation = make_conversation(generator=FakeSuggestionGenerator(suggestion_set))
    state = run(_walk_to_delivery(conversation))
    state = run(conversation.dispatch(state, ChooseDelivery(channel="none")))

    state = run(conversation.dispatch(state, Restart()))

    assert state.step == ConversationStep.PROMPT_ACTION
    assert len(state.transcript) == 1
    assert state.transcript[0].content.startswith(GREETING)


def test_events_outside_their_step_are_rejected(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())

    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, ChooseBudget(budget="luxury")))
    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, UserMessage(text="hello")))
    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, ModifySelections()))


def test_blank_message_is_ignored(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())
    state = run(conversation.dispatch(state, ChooseAction(action="create")))

    after = run(conversation.dispatch(state, UserMessage(text="   ")))

    assert after == state


def test_pending_conversation_rejects_new_events(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state()).model_copy(update={"pending": True})

    with pytest.raises(InvalidTransitionError):
        run(conversation.dispatch(state, ChooseAction(action="create")))


def test_dispatch_does_not_mutate_input_state(make_conversation):
    conversation = make_conversation()
    state = conversation.start(conversation.initial_state())
    snapshot = state.model_copy(deep=True)

    run(conversation.dispatch(state, ChooseAction(action="create")))

    assert state == snapshot
