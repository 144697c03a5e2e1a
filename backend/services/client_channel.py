# backend/services/client_channel.py
"""
Browser side of a relay session.
Wraps a Starlette WebSocket so the relay only sees str/bytes frames.
"""
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from models.session import Frame
from utils.errors import ClientError, RelayError, error_frame
from utils.logger import get_logger

logger = get_logger("ClientChannel")


class ClientChannel:
    """Adapter over an accepted FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._open = True

    @property
    def is_open(self) -> bool:
        return (
            self._open
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def receive(self) -> Optional[Frame]:
        """Next frame from the browser, or None once it has disconnected."""
        try:
            message = await self.websocket.receive()
        except (WebSocketDisconnect, RuntimeError) as e:
            self._open = False
            raise ClientError(f"Client receive failed: {e}") from e

        if message["type"] == "websocket.disconnect":
            self._open = False
            return None
        if message.get("bytes") is not None:
            return message["bytes"]
        return message.get("text")

    async def send(self, frame: Frame):
        if not self.is_open:
            raise ClientError("Client connection already closed")
        try:
            if isinstance(frame, bytes):
                await self.websocket.send_bytes(frame)
            else:
                await self.websocket.send_text(frame)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self._open = False
            raise ClientError(f"Client send failed: {e}") from e

    async def close(self, code: int = 1000):
        if not self.is_open:
            self._open = False
            return
        self._open = False
        try:
            await self.websocket.close(code=code)
        except (RuntimeError, OSError) as e:
            logger.debug(f"Client close ignored: {e}")

    async def reject(self, error: RelayError, code: int = 1008):
        """Send a single error frame and close; used before any session exists."""
        try:
            await self.send(error_frame(error))
        except ClientError as e:
            logger.debug(f"Could not deliver rejection: {e}")
        await self.close(code=code)
