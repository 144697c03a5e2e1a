# backend/services/voice_agent_client.py
"""
Upstream Voice Agent Client
Opens the outbound WebSocket to the Deepgram Voice Agent and exposes it to
the relay as plain str/bytes frames.
"""
import asyncio
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidHandshake, InvalidURI

from config import Settings
from models.session import Frame
from utils.errors import SetupError, UpstreamError
from utils.logger import get_logger

logger = get_logger("VoiceAgentClient")


def require_api_key(api_key: str) -> str:
    if not api_key:
        raise SetupError("DEEPGRAM_KEY not found in environment")
    return api_key


class VoiceAgentConnection:
    """One open upstream socket."""

    def __init__(self, ws: ClientConnection):
        self.ws = ws

    async def send(self, frame: Frame):
        try:
            await self.ws.send(frame)
        except ConnectionClosed as e:
            raise UpstreamError("Voice agent connection lost") from e

    async def receive(self) -> Optional[Frame]:
        """Next frame from the agent, or None after a clean close."""
        try:
            return await self.ws.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as e:
            logger.error(f"Voice agent closed abnormally: {e}")
            raise UpstreamError("Voice agent connection lost") from e

    async def close(self):
        await self.ws.close()


class VoiceAgentConnector:
    """Callable that opens a new VoiceAgentConnection per session."""

    def __init__(self, url: str, api_key: str, open_timeout: float = 10.0):
        self.url = url
        self.api_key = api_key
        self.open_timeout = open_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "VoiceAgentConnector":
        return cls(
            settings.voice_agent_url,
            settings.deepgram_api_key,
            open_timeout=settings.voice_agent_connect_timeout,
        )

    async def __call__(self) -> VoiceAgentConnection:
        require_api_key(self.api_key)
        try:
            ws = await connect(
                self.url,
                additional_headers={"Authorization": f"Token {self.api_key}"},
                open_timeout=self.open_timeout,
                max_size=None,
            )
        except (InvalidHandshake, InvalidURI, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Voice agent connect failed: {e}")
            raise UpstreamError("Voice agent connection failed") from e
        logger.info("🎤 Voice agent connected")
        return VoiceAgentConnection(ws)
