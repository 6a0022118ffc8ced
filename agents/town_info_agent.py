"""TownInfoAgent: a short, friendly paragraph about the town from Gemini."""

from __future__ import annotations

import logging
from typing import Any, Optional

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from agents.suggestion_agent import message_text
from config import DEFAULT_LANGUAGE, DEFAULT_MODEL_NAME, DEFAULT_TEMPERATURE, TOWN_NAME, TOWN_REGION, get_google_api_key
from prompts import load_prompt_template
from workflows.translations import translate

logger = logging.getLogger(__name__)


class TownInfoAgent:
    """Never raises: without a model or on failure it returns the canned fallback text."""

    def __init__(
        self,
        *,
        model_name: str = DEFAULT_MODEL_NAME,
        temperature: float = DEFAULT_TEMPERATURE,
        llm: Optional[Any] = None,
        town: str = TOWN_NAME,
        region: str = TOWN_REGION,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self.town = town
        self.region = region
        self.language = language
        api_key = get_google_api_key()
        if llm is None and api_key:
            llm = ChatGoogleGenerativeAI(model=model_name, temperature=temperature, google_api_key=api_key)
        if llm is None:
            logger.warning("Gemini API key not set. Town info will use the canned description.")
        self._llm = llm
        self._prompt_template = load_prompt_template("town_info", "town_info.md")

    def fallback_text(self) -> str:
        return translate("itinerary_town_info_fallback", self.language, {"town": self.town})

    async def get_town_info(self) -> str:
        if self._llm is None:
            return self.fallback_text()

        prompt = self._prompt_template.format(town=self.town, region=self.region, language=self.language)
        try:
            response = await self._llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            logger.warning(f"Town info request failed: {e}")
            return self.fallback_text()

        text = message_text(getattr(response, "content", response))
        return text or self.fallback_text()
