from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from agents.suggestion_agent import SuggestionAgent
from agents.town_info_agent import TownInfoAgent
from config import DEFAULT_LANGUAGE, DELIVERY_PROMPT_DELAY_SECONDS, SUGGESTION_TIMEOUT_SECONDS
from workflows.conversation import ItineraryConversation
from workflows.events import parse_event
from workflows.state import ConversationState
from workflows.translations import Translator

logger = logging.getLogger(__name__)


class ItineraryPlannerRuntime:
    """Runtime helper that owns the agents, the controllers and live sessions.

    Sessions live in memory only. Each session has its own lock so at most one
    event (and therefore one generator call) is in flight per conversation.
    """

    def __init__(
        self,
        *,
        suggestion_agent: Optional[SuggestionAgent] = None,
        town_info_factory: Optional[Callable[[str], Any]] = None,
        suggestion_timeout: Optional[float] = SUGGESTION_TIMEOUT_SECONDS,
        delivery_prompt_delay: float = DELIVERY_PROMPT_DELAY_SECONDS,
    ) -> None:
        self.suggestion_agent = suggestion_agent or SuggestionAgent()
        self.town_info_factory = town_info_factory or (lambda language: TownInfoAgent(language=language))
        self.suggestion_timeout = suggestion_timeout
        self.delivery_prompt_delay = delivery_prompt_delay

        self._conversations: Dict[str, ItineraryConversation] = {}
        self._sessions: Dict[str, ConversationState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def conversation_for(self, language: str) -> ItineraryConversation:
        """Return the controller for ``language``, building it on first use."""

        translator = Translator(language)
        conversation = self._conversations.get(translator.language)
        if conversation is None:
            town_info = self.town_info_factory(translator.language)
            conversation = ItineraryConversation(
                self.suggestion_agent.agenerate_suggestions,
                town_info.get_town_info,
                translator,
                suggestion_timeout=self.suggestion_timeout,
                delivery_prompt_delay=self.delivery_prompt_delay,
                listeners=[self._track],
            )
            self._conversations[translator.language] = conversation
        return conversation

    async def create_session(self, language: Optional[str] = None) -> ConversationState:
        conversation = self.conversation_for(language or DEFAULT_LANGUAGE)
        state = conversation.initial_state()
        self._sessions[state.session_id] = state
        self._locks[state.session_id] = asyncio.Lock()
        state = conversation.start(state)
        logger.info(f"Created itinerary session {state.session_id} ({state.language})")
        return state

    def get_session(self, session_id: str) -> ConversationState:
        state = self._sessions.get(session_id)
        if state is None:
            raise KeyError(session_id)
        return state

    async def handle_event(self, session_id: str, payload: Any) -> ConversationState:
        """Apply one user event to a session and return the resulting state."""

        self.get_session(session_id)
        event = parse_event(payload)
        async with self._locks[session_id]:
            state = self.get_session(session_id)
            conversation = self.conversation_for(state.language)
            new_state = await conversation.dispatch(state, event)
            if session_id in self._sessions:
                self._sessions[session_id] = new_state
        return new_state

    def delete_session(self, session_id: str) -> None:
        self.get_session(session_id)
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        logger.info(f"Deleted itinerary session {session_id}")

    def translator_for(self, state: ConversationState) -> Translator:
        return Translator(state.language)

    def _track(self, state: ConversationState) -> None:
        # Publish intermediate states (e.g. pending generation) to pollers
        if state.session_id in self._sessions:
            self._sessions[state.session_id] = state
