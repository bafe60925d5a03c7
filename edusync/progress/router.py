import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.auth.auth_utils import decode_token
from edusync.auth.permissions import UserContext, ensure_self, get_current_user
from edusync.db import get_db
from edusync.errors import Unauthorized
from edusync.progress.aggregator import AttemptSummary, get_student_history
from edusync.progress.refresher import ProgressRefresher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["Student Progress"])


@router.get("/{student_id}/history", response_model=List[AttemptSummary])
async def student_history(
    student_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user),
):
    """
    All attempts by the student, newest first
    """
    ensure_self(user, student_id)
    return await get_student_history(db, student_id)


def extract_ws_token(websocket: WebSocket) -> Optional[str]:
    auth = websocket.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1]
    return websocket.query_params.get("token")


@router.websocket("/{student_id}/progress/stream")
async def progress_stream(
    websocket: WebSocket,
    student_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Pushes the refreshed history whenever the student completes an assessment
    and on every poll interval. The refresher lives exactly as long as the socket.
    """
    token = extract_ws_token(websocket)
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        payload = decode_token(token)
    except Unauthorized:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if payload.get("sub") != student_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def fetch(subject_id: str):
        return await get_student_history(db, subject_id)

    async def push(history: List[AttemptSummary]):
        await websocket.send_json({"type": "history", "attempts": jsonable_encoder(history)})

    async with ProgressRefresher(student_id, fetch, push):
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Progress stream closed for %s", student_id)
