# agents/suggestion_agent.py
"""SuggestionAgent: asks Gemini for a multi-day list of candidate activities.

The agent renders the ``itinerary_suggestions`` prompt with the traveler's
interests, budget and trip length plus the local business catalog, then turns
the model's JSON answer into a validated :class:`SuggestionSet`. Any failure is
logged and reported as ``None`` so the conversation can fall back gracefully.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from tenacity import AsyncRetrying, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from config import (
    BUSINESS_CATALOG_PATH,
    DEFAULT_MODEL_NAME,
    SUGGESTION_MAX_ATTEMPTS,
    SUGGESTION_TEMPERATURE,
    TOWN_NAME,
    TOWN_REGION,
    get_google_api_key,
)
from prompts import load_prompt_template
from workflows.state import Budget, SuggestionSet

logger = logging.getLogger(__name__)

_CATALOG_FIELDS = ("id", "name", "category", "description", "location")
_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class SuggestionGenerationError(RuntimeError):
    """Raised when the model answer cannot be turned into suggestions."""


def is_retryable_error(exc: BaseException) -> bool:
    """True for rate limiting and transient server errors from the model API."""
    status = getattr(getattr(exc, "response", None), "status_code", None)
    if isinstance(status, int) and status in {429, 500, 502, 503, 504}:
        return True

    text = str(exc).lower()
    retry_tokens = (" 429", " 500", " 502", " 503", " 504", "resource exhausted", "resource_exhausted")
    return any(token in text for token in retry_tokens)


def message_text(content: Any) -> str:
    """Flatten a chat model ``content`` (string or list of parts) into text."""
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, dict):
                text = part.get("text") or part.get("content") or ""
                if text:
                    parts.append(str(text))
            else:
                parts.append(str(part))
        return "\n".join(parts).strip()
    return str(content or "").strip()


def parse_model_json(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model reply, tolerating Markdown fences."""
    candidate = text.strip()
    match = _FENCE_RE.match(candidate)
    if match and match.group(2):
        candidate = match.group(2).strip()

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end <= start:
            raise SuggestionGenerationError("Model returned a malformed JSON response.")
        try:
            data = json.loads(candidate[start:end + 1])
        except json.JSONDecodeError as exc:
            raise SuggestionGenerationError("Model returned a malformed JSON response.") from exc

    if not isinstance(data, dict):
        raise SuggestionGenerationError(f"Expected a JSON object, got {type(data).__name__}.")
    return data


def load_business_catalog(path: Optional[str]) -> List[Dict[str, Any]]:
    """Read the optional business catalog, keeping only the fields the prompt needs."""
    if not path:
        return []
    catalog_path = Path(path)
    if not catalog_path.is_file():
        logger.warning(f"Business catalog not found at {catalog_path}")
        return []

    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read business catalog {catalog_path}: {e}")
        return []

    if isinstance(raw, dict):
        raw = raw.get("businesses", [])
    return [
        {field: entry.get(field) for field in _CATALOG_FIELDS if entry.get(field) is not None}
        for entry in raw
        if isinstance(entry, dict)
    ]


class SuggestionAgent:
    """Generate itinerary suggestions grounded in the local business catalog."""

    def __init__(
        self,
        *,
        model_name: str = DEFAULT_MODEL_NAME,
        temperature: float = SUGGESTION_TEMPERATURE,
        llm: Optional[Any] = None,
        business_catalog: Optional[List[Dict[str, Any]]] = None,
        town: str = TOWN_NAME,
        region: str = TOWN_REGION,
        max_attempts: int = SUGGESTION_MAX_ATTEMPTS,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.max_attempts = max(1, max_attempts)
        self._llm = llm
        self.business_catalog = (
            business_catalog if business_catalog is not None else load_business_catalog(BUSINESS_CATALOG_PATH)
        )
        self.town = town
        self.region = region
        self._prompt_template = load_prompt_template("itinerary_suggestions", "itinerary_suggestions.md")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_suggestions(self, interests: str, budget: Any, duration: int) -> Optional[SuggestionSet]:
        """Blocking variant; returns ``None`` on any failure."""
        messages = self._build_messages(interests, budget, duration)
        try:
            response = self._invoke_with_retries(messages)
            return self._parse_response(response)
        except Exception as e:
            logger.error(f"Itinerary suggestion generation failed: {e}")
            return None

    async def agenerate_suggestions(self, interests: str, budget: Any, duration: int) -> Optional[SuggestionSet]:
        """Async variant used by the conversation runtime; returns ``None`` on any failure."""
        messages = self._build_messages(interests, budget, duration)
        try:
            response = await self._ainvoke_with_retries(messages)
            return self._parse_response(response)
        except Exception as e:
            logger.error(f"Itinerary suggestion generation failed: {e}")
            return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_llm(self) -> Any:
        if self._llm is None:
            api_key = get_google_api_key()
            if not api_key:
                raise SuggestionGenerationError("Missing GOOGLE_API_KEY or GEMINI_API_KEY.")
            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                temperature=self.temperature,
                google_api_key=api_key,
            )
        return self._llm

    def _invoke_with_retries(self, messages: List[Any]) -> Any:
        for attempt in Retrying(
            retry=retry_if_exception(is_retryable_error),
            wait=wait_exponential(min=0.5, max=6),
            stop=stop_after_attempt(self.max_attempts),
            reraise=True,
        ):
            with attempt:
                return self._get_llm().invoke(messages)

    async def _ainvoke_with_retries(self, messages: List[Any]) -> Any:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_retryable_error),
            wait=wait_exponential(min=0.5, max=6),
            stop=stop_after_attempt(self.max_attempts),
            reraise=True,
        ):
            with attempt:
                return await self._get_llm().ainvoke(messages)

    def _build_messages(self, interests: str, budget: Any, duration: int) -> List[Any]:
        budget_label = budget.value if isinstance(budget, Budget) else str(budget)
        logger.info(
            f"Generating itinerary for interests: \"{interests}\", budget: {budget_label}, duration: {duration} days"
        )
        system_prompt = self._prompt_template.format(
            town=self.town,
            region=self.region,
            duration=duration,
            interests=interests,
            budget=budget_label,
            business_context=json.dumps(self.business_catalog, ensure_ascii=False),
        )
        return [
            SystemMessage(content=system_prompt),
            HumanMessage(content=f"Plan {duration} day(s) around: {interests}"),
        ]

    def _parse_response(self, response: Any) -> SuggestionSet:
        data = parse_model_json(message_text(getattr(response, "content", response)))
        suggestions = SuggestionSet.from_payload(data)
        if not suggestions.item_ids():
            raise SuggestionGenerationError("Model returned no suggestions.")
        return suggestions
