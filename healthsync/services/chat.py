"""Appointment chat: access checks, message persistence and the room registry.

Every history read, room join and message send goes through
``open_chat_for``; nothing trusts the client to know whether chat is open.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from healthsync.core.errors import Forbidden, NotFound, ValidationFailed
from healthsync.database import unit_of_work
from healthsync.models.appointment import Appointment
from healthsync.models.message import Message

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def open_chat_for(db: Session, appointment_id: int, user_id: int, now: Optional[datetime] = None) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    if user_id not in appointment.participant_ids:
        raise Forbidden("Not a participant of this appointment")
    if not appointment.chat_open(now):
        raise Forbidden("Chat is available from 1 hour before until 24 hours after a confirmed appointment")
    return appointment


def history(db: Session, appointment_id: int, user_id: int, now: Optional[datetime] = None) -> List[Message]:
    open_chat_for(db, appointment_id, user_id, now)
    return db.query(Message).filter(
        Message.appointment_id == appointment_id
    ).order_by(Message.created_at, Message.id).all()


def post_message(
    db: Session, appointment_id: int, sender_id: int, text: str, now: Optional[datetime] = None
) -> Message:
    open_chat_for(db, appointment_id, sender_id, now)
    text = (text or "").strip()
    if not text:
        raise ValidationFailed("Message text is required")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationFailed(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")

    message = Message(appointment_id=appointment_id, sender_id=sender_id, text=text)
    with unit_of_work(db):
        db.add(message)
    db.refresh(message)
    return message


class RoomRegistry:
    """Process-wide map of appointment id to the sockets in that chat room."""

    def __init__(self):
        self._rooms: Dict[int, Set] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def join(self, room_id: int, socket) -> None:
        self._rooms.setdefault(room_id, set()).add(socket)
        logger.info("socket joined room %s (%d members)", room_id, len(self._rooms[room_id]))

    def leave(self, room_id: int, socket) -> None:
        members = self._rooms.get(room_id)
        if not members:
            return
        members.discard(socket)
        if not members:
            del self._rooms[room_id]
        self.tidy(room_id)

    def tidy(self, room_id: int) -> None:
        """Drop the lock of a room nobody is in any more."""
        lock = self._locks.get(room_id)
        if room_id not in self._rooms and lock is not None and not lock.locked():
            del self._locks[room_id]

    def leave_all(self, socket) -> None:
        for room_id in [rid for rid, members in self._rooms.items() if socket in members]:
            self.leave(room_id, socket)

    def members(self, room_id: int) -> Set:
        return set(self._rooms.get(room_id, ()))

    def rooms(self) -> List[int]:
        return list(self._rooms)

    def lock(self, room_id: int) -> asyncio.Lock:
        """Held while a message is stored and relayed, so a room sees messages in creation order."""
        return self._locks.setdefault(room_id, asyncio.Lock())

    async def broadcast(self, room_id: int, payload: dict) -> None:
        for socket in self.members(room_id):
            try:
                await socket.send_json(payload)
            except Exception:
                logger.warning("dropping unreachable socket from room %s", room_id, exc_info=True)
                self.leave(room_id, socket)


rooms = RoomRegistry()
