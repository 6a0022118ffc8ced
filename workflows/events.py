"""User events accepted by the itinerary conversation."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from workflows.state import Budget, DeliveryChannel


class UserMessage(BaseModel):
    type: Literal["message"] = "message"
    text: str


class ChooseAction(BaseModel):
    type: Literal["action"] = "action"
    action: Literal["create", "learn"]


class ChooseBudget(BaseModel):
    type: Literal["budget"] = "budget"
    budget: Budget


class ToggleItem(BaseModel):
    type: Literal["toggle"] = "toggle"
    item_id: str


class ConfirmSelection(BaseModel):
    type: Literal["confirm"] = "confirm"


class ModifySelections(BaseModel):
    type: Literal["modify"] = "modify"


class ChooseDelivery(BaseModel):
    type: Literal["delivery"] = "delivery"
    channel: DeliveryChannel


class Restart(BaseModel):
    type: Literal["restart"] = "restart"


ConversationEvent = Annotated[
    Union[
        UserMessage,
        ChooseAction,
        ChooseBudget,
        ToggleItem,
        ConfirmSelection,
        ModifySelections,
        ChooseDelivery,
        Restart,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(ConversationEvent)


def parse_event(payload: Any) -> ConversationEvent:
    """Build an event from a raw payload.

    A bare string is treated as a chat message; dicts must carry a ``type``
    discriminator (``message``, ``action``, ``budget``, ``toggle``, ``confirm``,
    ``modify``, ``delivery`` or ``restart``). Raises ``pydantic.ValidationError``
    on anything else.
    """
    if isinstance(payload, BaseModel):
        return payload  # type: ignore[return-value]
    if isinstance(payload, str):
        return UserMessage(text=payload)
    data: Dict[str, Any] = dict(payload or {})
    if "type" not in data and "message" in data:
        data = {"type": "message", "text": data["message"]}
    return _EVENT_ADAPTER.validate_python(data)
