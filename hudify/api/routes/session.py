"""WebSocket for the session host: transcripts and gestures in, display messages out."""
import asyncio
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from hudify.api.state import AppState, get_state
from hudify.core.display import QueueDisplay
from hudify.core.session_machine import SessionModeMachine

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionMessage(BaseModel):
    type: Literal["transcription", "head_position", "error"]
    text: str = ""
    is_final: bool = True
    position: Optional[str] = None
    message: Optional[str] = None


async def _dispatch(machine: SessionModeMachine, user_id: str, msg: SessionMessage) -> None:
    if msg.type == "transcription":
        await machine.handle_transcript(user_id, msg.text, is_final=msg.is_final)
    elif msg.type == "head_position":
        await machine.handle_head_position(user_id, msg.position or "")
    else:
        machine.handle_error(user_id, msg.message or "unknown error")


@router.websocket("/ws/{user_id}")
async def session_socket(websocket: WebSocket, user_id: str, state: AppState = Depends(get_state)):
    """One connection per user session; events are handled one at a time, in order."""
    await websocket.accept()
    machine = state.machine
    display = QueueDisplay()
    sender = asyncio.create_task(display.pump(websocket.send_json))
    await machine.start_session(user_id, display)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                logger.warning("Ignoring non-text frame from %s", user_id)
                continue
            try:
                msg = SessionMessage.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Bad session message from %s: %s", user_id, e.errors()[:1])
                continue
            await _dispatch(machine, user_id, msg)
    except WebSocketDisconnect:
        logger.info("Session socket closed for %s", user_id)
    finally:
        machine.end_session(user_id, display)
        sender.cancel()
