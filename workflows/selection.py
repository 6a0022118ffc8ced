"""Selection toggling and derivation of the final itinerary."""

from __future__ import annotations

from typing import Callable, Iterable, List

from workflows.state import Itinerary, ItineraryDay, SuggestionSet


def toggle_item(selection: Iterable[str], item_id: str) -> List[str]:
    """Return a new selection with ``item_id`` added or removed."""
    current = list(selection)
    if item_id in current:
        return [existing for existing in current if existing != item_id]
    return current + [item_id]


def derive_itinerary(
    suggestions: SuggestionSet,
    selection: Iterable[str],
    theme: str,
    translate: Callable[..., str],
) -> Itinerary:
    """Keep only the selected items, grouped by day in generator order.

    Item order inside a day follows the generator as well, and days without a
    selected item are left out. The result depends only on the inputs, so
    deriving twice gives equal itineraries.
    """
    chosen = set(selection)
    days: List[ItineraryDay] = []
    for day in suggestions.days:
        items = [item.model_copy() for item in day.options if item.id in chosen]
        if not items:
            continue
        days.append(
            ItineraryDay(
                day_number=day.day_number,
                title=translate("itinerary_day_title", {"day": day.day_number}),
                theme=theme,
                items=items,
            )
        )

    return Itinerary(title=suggestions.title, duration=suggestions.duration, days=days)
