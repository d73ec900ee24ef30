import json
import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
from healthsync.database import get_db, SessionLocal
from healthsync.models.user import User
from healthsync.core.errors import CareError, ValidationFailed
from healthsync.core.security import get_current_active_user, user_from_token
from healthsync.schemas import MessageResponse
from healthsync.services import chat
from healthsync.services.chat import rooms

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

EVENTS = ("join_room", "send_message")


@router.get("/api/chat/{appointment_id}", response_model=List[MessageResponse])
async def get_chat_history(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return chat.history(db, appointment_id, current_user.id)


def _check_access(user_id: int, appointment_id: int):
    with SessionLocal() as db:
        chat.open_chat_for(db, appointment_id, user_id)


def _store_message(user_id: int, appointment_id: int, text: Optional[str]) -> dict:
    with SessionLocal() as db:
        message = chat.post_message(db, appointment_id, user_id, text)
        return MessageResponse.model_validate(message).model_dump(by_alias=True, mode="json")


async def _join_room(websocket: WebSocket, user_id: int, appointment_id: int):
    await run_in_threadpool(_check_access, user_id, appointment_id)
    rooms.join(appointment_id, websocket)
    await websocket.send_json({"event": "joined", "appointmentId": appointment_id})


async def _send_message(user_id: int, appointment_id: int, text: Optional[str]):
    # Stored before it is relayed, one message at a time per room
    async with rooms.lock(appointment_id):
        payload = await run_in_threadpool(_store_message, user_id, appointment_id, text)
        await rooms.broadcast(appointment_id, {"event": "receive_message", "message": payload})
    rooms.tidy(appointment_id)
    logger.info("user %s sent message %s in room %s", user_id, payload["id"], appointment_id)


async def _handle_frame(websocket: WebSocket, user_id: int, raw: Optional[str]):
    if raw is None:
        raise ValidationFailed("Binary frames are not supported")
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationFailed("Frames must be JSON objects")
    if not isinstance(data, dict) or data.get("event") not in EVENTS:
        raise ValidationFailed(f"Unknown event, expected one of {', '.join(EVENTS)}")
    appointment_id = data.get("appointmentId")
    if not isinstance(appointment_id, int) or isinstance(appointment_id, bool):
        raise ValidationFailed("appointmentId is required")

    if data["event"] == "join_room":
        await _join_room(websocket, user_id, appointment_id)
    else:
        await _send_message(user_id, appointment_id, data.get("text"))


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, token: Optional[str] = None):
    user_id = None
    if token:
        with SessionLocal() as db:
            user = user_from_token(token, db)
            user_id = user.id if user else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))
            try:
                await _handle_frame(websocket, user_id, frame.get("text"))
            except CareError as exc:
                logger.warning("chat frame refused for user %s: %s", user_id, exc.detail)
                await websocket.send_json({"event": "error", "detail": exc.detail, "error": exc.code})
            except SQLAlchemyError:
                logger.exception("chat frame failed for user %s", user_id)
                await websocket.send_json({"event": "error", "detail": "Server Error", "error": "server"})
    except WebSocketDisconnect:
        logger.info("user %s disconnected from chat", user_id)
    finally:
        rooms.leave_all(websocket)
