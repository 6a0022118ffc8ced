"""Pytest fixtures for offline itinerary planner tests."""

from __future__ import annotations

import json
import os
import types
from typing import Any, Dict, List, Optional

import pytest

# Ensure placeholder keys exist so modules that read env on import succeed.
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

from workflows.conversation import ItineraryConversation  # noqa: E402
from workflows.state import SuggestionSet  # noqa: E402
from workflows.translations import Translator  # noqa: E402


class FakeChatModel:
    """Fakes a LangChain chat model with ``invoke`` and ``ainvoke``.

    ``replies`` is a queue of contents (strings, dicts serialized to JSON, or
    exceptions to raise), one per call.
    """

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.calls: List[Any] = []

    def _next(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, (dict, list)):
            reply = json.dumps(reply)
        return types.SimpleNamespace(content=reply)

    def invoke(self, messages):
        return self._next(messages)

    async def ainvoke(self, messages):
        return self._next(messages)


class FakeSuggestionGenerator:
    """Async Suggestion Generator returning queued results (or raising them)."""

    def __init__(self, *results: Any):
        self.results = list(results)
        self.calls: List[tuple] = []

    async def __call__(self, interests, budget, duration):
        self.calls.append((interests, budget, duration))
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


class FakeTownInfo:
    def __init__(self, text: str = "Gros-Islet hosts a famous Friday street party.", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.error:
            raise self.error
        return self.text


SAMPLE_SUGGESTIONS: Dict[str, Any] = {
    "title": "Sun, Sand and Saltfish",
    "duration": 3,
    "suggestions": [
        {
            "day": 1,
            "options": [
                {
                    "id": "biz-1-day1-opt1",
                    "time": "9:00 AM",
                    "activity": "Morning swim",
                    "businessName": "Reduit Beach Club",
                    "location": "Reduit Beach",
                    "details": "Calm water and loungers.",
                    "type": "activity",
                },
                {
                    "id": "biz-2-day1-opt2",
                    "time": "12:30 PM",
                    "activity": "Creole lunch",
                    "businessName": "Spinnakers",
                    "location": "Rodney Bay",
                    "details": "Fresh catch of the day.",
                    "type": "dining",
                },
                {
                    "id": "biz-3-day1-opt3",
                    "time": "4:00 PM",
                    "activity": "Fort walk",
                    "businessName": "Pigeon Island",
                    "location": "Pigeon Island National Park",
                    "details": "Ruins and views.",
                    "type": "sightseeing",
                },
            ],
        },
        {
            "day": 2,
            "options": [
                {
                    "time": "10:00 AM",
                    "activity": "Snorkel trip",
                    "businessName": "Island Divers",
                    "location": "Anse Cochon",
                    "details": "Reef and turtles.",
                    "type": "activity",
                },
                {
                    "time": "7:00 PM",
                    "activity": "Street party",
                    "businessName": "Friday Night Jump-Up",
                    "location": "Gros-Islet village",
                    "details": "Grilled fish and soca.",
                    "type": "dining",
                },
            ],
        },
        {
            "day": 3,
            "options": [
                {
                    "id": "biz-6-day3-opt1",
                    "time": "8:00 AM",
                    "activity": "Hike",
                    "businessName": "Gros Piton Trail",
                    "location": "Soufriere",
                    "details": "Early start for the summit.",
                    "type": "activity",
                },
            ],
        },
    ],
}


@pytest.fixture
def suggestion_payload() -> Dict[str, Any]:
    return json.loads(json.dumps(SAMPLE_SUGGESTIONS))


@pytest.fixture
def suggestion_set(suggestion_payload) -> SuggestionSet:
    return SuggestionSet.from_payload(suggestion_payload)


@pytest.fixture
def translator() -> Translator:
    return Translator("en")


@pytest.fixture
def make_conversation(translator):
    """Factory building a controller with fake capabilities and no delays."""

    def _factory(generator=None, town_info=None, **kwargs) -> ItineraryConversation:
        kwargs.setdefault("delivery_prompt_delay", 0)
        kwargs.setdefault("suggestion_timeout", 5)
        return ItineraryConversation(
            generator or FakeSuggestionGenerator(),
            town_info or FakeTownInfo(),
            translator,
            **kwargs,
        )

    return _factory
