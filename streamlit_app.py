"""Streamlit front end for chatting with the itinerary planner API."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx
import streamlit as st

from config import ITINERARY_PLANNER_API_URL, TOWN_NAME
from workflows.translations import translate
from workflows.views import GeneratingView, PlaceholderView, to_markdown


@st.cache_resource
def get_http_client() -> httpx.Client:
    # Suggestion generation can take a while
    return httpx.Client(base_url=ITINERARY_PLANNER_API_URL, timeout=90.0)


def _update_session(data: Dict[str, Any]) -> None:
    st.session_state["session_id"] = data["session_id"]
    st.session_state["state"] = data.get("state", {})
    st.session_state["panel"] = data.get("panel", {})
    st.session_state["controls"] = data.get("controls", {})


def _create_session(client: httpx.Client, language: str) -> None:
    response = client.post("/sessions", json={"language": language})
    response.raise_for_status()
    _update_session(response.json())


def _ensure_session(client: httpx.Client, language: str) -> None:
    state = st.session_state.get("state") or {}
    if st.session_state.get("session_id") and state.get("language") == language:
        return
    _create_session(client, language)


def _send_event(client: httpx.Client, event: Dict[str, Any]) -> None:
    session_id = st.session_state.get("session_id")
    response = client.post(f"/sessions/{session_id}/events", json=event)
    if response.status_code == 404:
        st.session_state["session_id"] = None
        st.rerun()
        return
    if response.status_code == 409:
        st.warning(response.json().get("detail", "That action isn't available right now."))
        return
    response.raise_for_status()
    _update_session(response.json())


def _render_transcript(state: Dict[str, Any]) -> None:
    for turn in state.get("transcript", []):
        speaker = "user" if turn.get("speaker") == "user" else "assistant"
        with st.chat_message(speaker, avatar=None if speaker == "user" else "🐚"):
            st.markdown(turn.get("content", ""))


def _render_controls(client: httpx.Client, controls: Dict[str, Any]) -> None:
    mode = controls.get("mode")
    if mode == "buttons":
        buttons: List[Dict[str, Any]] = controls.get("buttons", [])
        columns = st.columns(len(buttons) or 1)
        for idx, (column, button) in enumerate(zip(columns, buttons)):
            if column.button(button["label"], key=f"control_{idx}", disabled=controls.get("disabled", False)):
                _send_event(client, button["event"])
                st.rerun()
    elif mode == "text":
        prompt = st.chat_input(controls.get("placeholder") or "", disabled=controls.get("disabled", False))
        if prompt:
            with st.spinner("..."):
                _send_event(client, {"type": "message", "text": prompt})
            st.rerun()


def _render_picker(client: httpx.Client, panel: Dict[str, Any]) -> None:
    st.subheader(panel.get("title", ""))
    for day in panel.get("days", []):
        st.markdown(f"#### {day['heading']}")
        for option in day.get("options", []):
            label = f"**{option['activity']}** · {option['business_name']} ({option['category']})"
            checked = st.checkbox(label, value=option["checked"], key=f"pick_{option['item_id']}", help=option["details"])
            if checked != option["checked"]:
                _send_event(client, {"type": "toggle", "item_id": option["item_id"]})
                st.rerun()
    if st.button(panel.get("confirm_label", ""), disabled=not panel.get("confirm_enabled"), type="primary"):
        _send_event(client, {"type": "confirm"})
        st.rerun()


def _render_itinerary(client: httpx.Client, panel: Dict[str, Any]) -> None:
    st.subheader(panel.get("title", ""))
    for day in panel.get("days", []):
        with st.expander(day["heading"], expanded=True):
            if day.get("theme"):
                st.caption(day["theme"])
            for entry in day.get("entries", []):
                st.markdown(f"**{entry['time']}** {entry['activity']}")
                if entry.get("subtitle"):
                    st.caption(entry["subtitle"])
                if entry.get("details"):
                    st.write(entry["details"])
    if st.button(panel.get("modify_label", ""), key="modify"):
        _send_event(client, {"type": "modify"})
        st.rerun()


def _render_panel(client: httpx.Client, panel: Dict[str, Any]) -> None:
    kind = panel.get("kind")
    if kind == "suggestion_picker":
        _render_picker(client, panel)
    elif kind == "itinerary":
        _render_itinerary(client, panel)
    elif kind == "generating":
        st.info(to_markdown(GeneratingView.model_validate(panel)))
    elif kind == "placeholder":
        st.markdown(to_markdown(PlaceholderView.model_validate(panel)))


def main() -> None:
    st.set_page_config(page_title="Itinerary Planner", page_icon="🐚", layout="wide")

    st.session_state.setdefault("session_id", None)
    language = st.sidebar.selectbox("Language", ("en", "fr", "kw"), index=0)

    st.title(translate("itineraryPlanner", language))
    st.caption(translate("itinerary_page_subtitle", language, {"town": TOWN_NAME}))

    client = get_http_client()
    try:
        _ensure_session(client, language)
    except httpx.HTTPError as exc:  # pragma: no cover - network failure feedback
        st.error(f"Unable to connect to the planner API: {exc}")
        return

    chat_column, panel_column = st.columns([2, 3])
    with chat_column:
        _render_transcript(st.session_state.get("state", {}))
        try:
            _render_controls(client, st.session_state.get("controls", {}))
        except httpx.HTTPError as exc:  # pragma: no cover - network failure feedback
            st.error(f"Request failed: {exc}")
    with panel_column:
        _render_panel(client, st.session_state.get("panel", {}))


if __name__ == "__main__":
    main()
