"""Prompt templates for the itinerary planner's Gemini calls.

Each prompt is a Markdown file stored next to this module and rendered with
``str.format``. Literal braces in a prompt (the JSON schema example in
``itinerary_suggestions.md``) are therefore doubled.

A deployment can replace any prompt without touching the package by setting
``ITINERARY_PLANNER_PROMPT_<NAME>``: when the value points to an existing
file, that file's contents are used; otherwise the value itself is taken as
the prompt text.
"""
from __future__ import annotations

import os
import string
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, FrozenSet

__all__ = ["PromptTemplate", "load_prompt_template", "render_prompt"]

_PROMPT_DIR = Path(__file__).resolve().parent
_OVERRIDE_PREFIX = "ITINERARY_PLANNER_PROMPT_"


def _override_for(name: str) -> tuple[str, str] | None:
    """Return ``(source, text)`` for an environment override of ``name``, if any."""
    variable = _OVERRIDE_PREFIX + name.upper()
    value = os.getenv(variable)
    if not value:
        return None

    candidate = Path(value)
    if candidate.is_file():
        return str(candidate), candidate.read_text(encoding="utf-8")
    return variable, value


@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt plus where it was loaded from.

    ``source`` is the file path or the environment variable the text came
    from, which keeps error messages pointing at something editable.
    """

    name: str
    text: str
    source: str = ""

    @property
    def placeholders(self) -> FrozenSet[str]:
        """Names of the ``{field}`` placeholders the prompt expects."""
        return frozenset(
            field for _, field, _, _ in string.Formatter().parse(self.text) if field
        )

    def format(self, **kwargs: Any) -> str:
        try:
            return self.text.format(**kwargs)
        except KeyError as exc:
            raise KeyError(
                f"Prompt '{self.name}' ({self.source}) needs a value for {exc.args[0]!r}"
            ) from exc


@lru_cache(maxsize=None)
def load_prompt_template(name: str, filename: str) -> PromptTemplate:
    """Load prompt ``name``, preferring an environment override over ``filename``.

    Results are cached per ``(name, filename)``; call
    ``load_prompt_template.cache_clear()`` after changing an override at
    runtime.
    """
    override = _override_for(name)
    if override is not None:
        source, text = override
        return PromptTemplate(name=name, text=text, source=source)

    path = _PROMPT_DIR / filename
    if not path.is_file():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return PromptTemplate(name=name, text=path.read_text(encoding="utf-8"), source=str(path))


def render_prompt(name: str, filename: str, **kwargs: Any) -> str:
    return load_prompt_template(name, filename).format(**kwargs)
