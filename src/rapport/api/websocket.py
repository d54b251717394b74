"""
WebSocket handler for real-time Rapport sessions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..core.models import TranscriptSegment
from ..core.scheduler import FacilitationScheduler
from .schemas import SegmentRequest
from .session import SessionManager

logger = logging.getLogger(__name__)


async def _handle_message(
    websocket: WebSocket,
    scheduler: FacilitationScheduler,
    data: Any,
) -> bool:
    """Apply one client message. Returns False once the session has ended."""
    if not isinstance(data, dict):
        await websocket.send_json({"type": "error", "message": "Messages must be JSON objects"})
        return True
    msg_type = data.get("type", "")

    if msg_type == "segment":
        try:
            seg = SegmentRequest(**{k: v for k, v in data.items() if k != "type"})
        except ValidationError as e:
            await websocket.send_json({"type": "error", "message": f"Invalid segment: {e.errors()}"})
            return True
        scheduler.ingest(TranscriptSegment(
            speaker_id=seg.speaker_id,
            speaker_name=seg.speaker_name,
            text=seg.text,
            timestamp_ms=seg.timestamp_ms if seg.timestamp_ms is not None else scheduler.now_ms(),
            is_final=seg.is_final,
        ))

    elif msg_type == "next":
        await scheduler.force_next()

    elif msg_type == "dismiss":
        scheduler.dismiss()

    elif msg_type == "skip":
        scheduler.skip()

    elif msg_type == "state":
        await websocket.send_json({"type": "state", "data": scheduler.snapshot()})

    elif msg_type == "end":
        await scheduler.end()  # report arrives through the session_ended event
        return False

    else:
        await websocket.send_json({"type": "error", "message": f"Unknown message type: {msg_type!r}"})

    return True


async def websocket_endpoint(
    websocket: WebSocket,
    session_id: str,
    session_manager: SessionManager,
):
    """
    WebSocket handler for a facilitated conversation.

    Protocol:
        Client -> Server:
            {"type": "segment", "speaker_id": "...", "speaker_name": "...",
             "text": "...", "is_final": true, "timestamp_ms": 0}
            {"type": "next"}      (force the next question)
            {"type": "dismiss"}   (question answered)
            {"type": "skip"}
            {"type": "state"}
            {"type": "end"}

        Server -> Client:
            {"type": "question", "data": {...}}
            {"type": "question_cleared", "reason": "answered|skipped", "question_text": "..."}
            {"type": "analysis", "data": {...}}
            {"type": "state", "data": {...}}
            {"type": "session_ended", "data": {...}}
            {"type": "error", "message": "..."}
    """
    await websocket.accept()

    scheduler = session_manager.get_scheduler(session_id)
    if scheduler is None:
        await websocket.send_json({"type": "error", "message": f"Session {session_id} not found"})
        await websocket.close()
        return

    events: asyncio.Queue = asyncio.Queue()
    unsubscribe = scheduler.add_listener(events.put_nowait)

    async def _forward_events() -> None:
        while True:
            event = await events.get()
            await websocket.send_json(event)
            if event.get("type") == "session_ended":
                return

    async def _receive() -> None:
        while True:
            data = await websocket.receive_json()
            if not await _handle_message(websocket, scheduler, data):
                return

    sender = asyncio.create_task(_forward_events())
    receiver = asyncio.create_task(_receive())
    try:
        await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if receiver.done() and not sender.done() and scheduler.is_ended:
            # let the session_ended event go out before closing
            await asyncio.wait({sender}, timeout=1.0)
    finally:
        unsubscribe()
        for task in (sender, receiver):
            if not task.done():
                task.cancel()

    try:
        for task in (receiver, sender):
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()
        if scheduler.is_ended:
            await websocket.close()
    except WebSocketDisconnect:
        logger.info(f"[WebSocket] Client left session {session_id}")
