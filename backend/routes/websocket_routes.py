# backend/routes/websocket_routes.py
"""
WebSocket routes for realtime voice sessions
"""
from fastapi import APIRouter, Depends, WebSocket

from services.session_acceptor import VoiceSessionAcceptor
from utils.logger import get_logger

router = APIRouter(tags=["WebSocket"])
logger = get_logger("WebSocketRoutes")


def get_acceptor(websocket: WebSocket) -> VoiceSessionAcceptor:
    return websocket.app.state.voice_acceptor


@router.websocket("/talk")
async def talk_websocket(
    websocket: WebSocket,
    acceptor: VoiceSessionAcceptor = Depends(get_acceptor),
):
    """
    Free-form voice chat with a fixed assistant persona.

    Client sends:
    - Audio chunks (bytes, linear16 PCM @ 48kHz)
    - Control messages (JSON)

    Server sends whatever the voice agent sends:
    - Audio chunks (bytes, linear16 PCM @ 24kHz)
    - Agent events (JSON)
    - {"type": "Error", "error": "..."} when the session fails
    """
    await acceptor.handle_talk(websocket)


@router.websocket("/interview")
async def interview_websocket(
    websocket: WebSocket,
    acceptor: VoiceSessionAcceptor = Depends(get_acceptor),
):
    """
    Mock interview with a generated interviewer persona.

    Query params:
    - role (required): job role being interviewed for
    - interviewerName (optional): catalogue persona, defaults to the first
    """
    await acceptor.handle_interview(websocket)
