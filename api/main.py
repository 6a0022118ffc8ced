"""FastAPI application exposing the itinerary planner conversation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from config import CORS_ORIGINS, LOG_LEVEL, validate_api_keys
from workflows.conversation import InvalidTransitionError
from workflows.runtime import ItineraryPlannerRuntime
from workflows.state import ConversationState
from workflows.views import content_panel, input_controls

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

for missing_key in validate_api_keys():
    logger.warning(f"{missing_key} not set. AI-powered replies will use fallbacks.")

app = FastAPI(title="Itinerary Planner API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

runtime = ItineraryPlannerRuntime()


def _serialize(state: ConversationState) -> Dict[str, Any]:
    t = runtime.translator_for(state)
    return {
        "session_id": state.session_id,
        "state": jsonable_encoder(state.model_dump()),
        "panel": jsonable_encoder(content_panel(state, t).model_dump()),
        "controls": jsonable_encoder(input_controls(state, t).model_dump()),
    }


def _get_state(session_id: str) -> ConversationState:
    try:
        return runtime.get_session(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/sessions")
async def create_session(payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    language = (payload or {}).get("language")
    state = await runtime.create_session(language)
    return _serialize(state)


@app.get("/sessions/{session_id}")
async def get_session(session_id: str) -> Dict[str, Any]:
    return _serialize(_get_state(session_id))


@app.post("/sessions/{session_id}/events")
async def process_event(session_id: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    _get_state(session_id)
    try:
        state = await runtime.handle_event(session_id, payload or {})
    except KeyError:
        # Deleted while this event waited behind another one
        raise HTTPException(status_code=404, detail="Session not found")
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _serialize(state)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str) -> Dict[str, str]:
    _get_state(session_id)
    runtime.delete_session(session_id)
    return {"status": "deleted"}
