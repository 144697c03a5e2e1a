# backend/services/relay_session.py
"""
Relay Session
Bridges one browser WebSocket to one voice agent WebSocket.

Lifecycle: connecting -> configuring -> active -> closed | errored

- connecting:  settings are prepared (interviewer prompt) and the agent socket opens
- configuring: Settings payload sent as the agent's first frame, waiting for SettingsApplied
- active:      frames flow both ways, KeepAlive sent on a fixed interval

Client frames received before the session is active are buffered (bounded)
and flushed in order right after SettingsApplied.
"""
import asyncio
import json
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Protocol

from models.agent_settings import AgentSettings
from models.session import TERMINAL_STATES, Frame, SessionKind, SessionState
from utils.errors import ClientError, RelayError, SetupError, UpstreamError, error_frame
from utils.logger import get_logger

logger = get_logger("RelaySession")

SETTINGS_APPLIED = "SettingsApplied"
KEEPALIVE_FRAME = json.dumps({"type": "KeepAlive"})

NORMAL_CLOSE = 1000
INTERNAL_ERROR_CLOSE = 1011


class ClientSocket(Protocol):
    is_open: bool

    async def receive(self) -> Optional[Frame]: ...

    async def send(self, frame: Frame) -> None: ...

    async def close(self, code: int = NORMAL_CLOSE) -> None: ...


class UpstreamSocket(Protocol):
    async def receive(self) -> Optional[Frame]: ...

    async def send(self, frame: Frame) -> None: ...

    async def close(self) -> None: ...


SettingsFactory = Callable[[], Awaitable[AgentSettings]]
UpstreamConnector = Callable[[], Awaitable[UpstreamSocket]]


def inspect_message_type(frame: Frame) -> Optional[str]:
    """Peek at the ``type`` of a JSON text frame. Binary frames are never decoded."""
    if not isinstance(frame, str):
        return None
    try:
        message = json.loads(frame)
    except ValueError:
        logger.debug("Non-JSON text frame from voice agent")
        return None
    if isinstance(message, dict):
        message_type = message.get("type")
        return message_type if isinstance(message_type, str) else None
    return None


class RelaySession:
    """One client socket, one upstream socket, torn down together."""

    def __init__(
        self,
        client: ClientSocket,
        prepare_settings: SettingsFactory,
        connect_upstream: UpstreamConnector,
        *,
        kind: SessionKind = SessionKind.TALK,
        keepalive_interval: float = 5.0,
        max_pending_frames: int = 256,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.kind = kind
        self.client = client
        self.upstream: Optional[UpstreamSocket] = None
        self.state = SessionState.CONNECTING
        self.error: Optional[RelayError] = None

        self.keepalive_interval = keepalive_interval
        self.max_pending_frames = max_pending_frames
        self.dropped_frames = 0

        self._prepare_settings = prepare_settings
        self._connect_upstream = connect_upstream
        self._sleep = sleep
        self._pending: Deque[Frame] = deque(maxlen=max_pending_frames)
        self._finished = asyncio.Event()
        self._torn_down = False

        self._client_task: Optional[asyncio.Task] = None
        self._setup_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._upstream_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    async def run(self) -> SessionState:
        """Drive the session until either side closes; returns the terminal state."""
        logger.info(f"[{self.session_id}] {self.kind.value} session started")
        self._client_task = asyncio.create_task(self._client_loop())
        self._setup_task = asyncio.create_task(self._setup())
        try:
            await self._finished.wait()
        finally:
            self._finish(SessionState.CLOSED)
            # Teardown completes even if run() itself is cancelled.
            await asyncio.shield(asyncio.ensure_future(self._teardown()))
        return self.state

    # ------------------------------------------------------------------ #
    # State transitions
    # ------------------------------------------------------------------ #
    def _finish(self, state: SessionState, error: Optional[RelayError] = None):
        if self.is_terminal:
            return
        self.state = state
        self.error = error
        self._finished.set()

    def _fail(self, error: RelayError):
        logger.error(f"[{self.session_id}] {type(error).__name__}: {error}")
        self._finish(SessionState.ERRORED, error)

    async def _activate(self):
        while self._pending:
            if self.is_terminal:
                return
            await self.upstream.send(self._pending.popleft())
        if self.is_terminal:
            return
        self.state = SessionState.ACTIVE
        self._keepalive_task = asyncio.create_task(self._keepalive_loop())
        logger.info(f"[{self.session_id}] ✅ Session active")

    # ------------------------------------------------------------------ #
    # Tasks
    # ------------------------------------------------------------------ #
    async def _setup(self):
        try:
            settings = await self._prepare_settings()
            if self.is_terminal:
                return
            self._connect_task = asyncio.create_task(self._connect_upstream())
            self.upstream = await self._connect_task
            if self.is_terminal:
                return
            self.state = SessionState.CONFIGURING
            await self.upstream.send(settings.to_json())
            logger.info(f"[{self.session_id}] Configuration sent")
        except RelayError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.error(f"[{self.session_id}] Unexpected setup error: {e}", exc_info=True)
            self._fail(SetupError(str(e)))
            return
        if not self.is_terminal:
            self._upstream_task = asyncio.create_task(self._upstream_loop())

    async def _client_loop(self):
        try:
            while not self.is_terminal:
                frame = await self.client.receive()
                if frame is None:
                    logger.info(f"[{self.session_id}] Client disconnected")
                    self._finish(SessionState.CLOSED)
                    return
                if self.state is SessionState.ACTIVE:
                    await self.upstream.send(frame)
                elif not self.is_terminal:
                    self._buffer(frame)
        except RelayError as e:
            self._fail(e)
        except Exception as e:
            logger.error(f"[{self.session_id}] Client loop error: {e}", exc_info=True)
            self._fail(ClientError(str(e)))

    async def _upstream_loop(self):
        try:
            while not self.is_terminal:
                frame = await self.upstream.receive()
                if frame is None:
                    logger.info(f"[{self.session_id}] Voice agent disconnected")
                    self._finish(SessionState.CLOSED)
                    return
                message_type = inspect_message_type(frame)
                if message_type:
                    logger.debug(f"[{self.session_id}] Agent → {message_type}")
                if self.is_terminal:
                    return
                await self.client.send(frame)
                if message_type == SETTINGS_APPLIED and self.state is SessionState.CONFIGURING:
                    await self._activate()
        except RelayError as e:
            self._fail(e)
        except Exception as e:
            logger.error(f"[{self.session_id}] Upstream loop error: {e}", exc_info=True)
            self._fail(UpstreamError())

    async def _keepalive_loop(self):
        try:
            while self.state is SessionState.ACTIVE:
                await self._sleep(self.keepalive_interval)
                if self.state is not SessionState.ACTIVE:
                    return
                await self.upstream.send(KEEPALIVE_FRAME)
        except RelayError as e:
            self._fail(e)

    def _buffer(self, frame: Frame):
        # deque(maxlen) evicts the oldest frame on append.
        if len(self._pending) == self._pending.maxlen:
            if self.dropped_frames == 0:
                logger.warning(
                    f"[{self.session_id}] Pending buffer full ({self.max_pending_frames}), dropping oldest client frames"
                )
            self.dropped_frames += 1
        self._pending.append(frame)

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #
    async def _teardown(self):
        if self._torn_down:
            return
        self._torn_down = True

        tasks = [
            t
            for t in (
                self._keepalive_task,
                self._upstream_task,
                self._setup_task,
                self._connect_task,
                self._client_task,
            )
            if t is not None
        ]
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # A connect that resolved after the session ended still owns a socket.
        if self.upstream is None and self._connect_task is not None:
            task = self._connect_task
            if task.done() and not task.cancelled() and task.exception() is None:
                self.upstream = task.result()

        self._pending.clear()

        if self.error is not None and self.client.is_open:
            try:
                await self.client.send(error_frame(self.error))
            except ClientError as e:
                logger.debug(f"[{self.session_id}] Error frame not delivered: {e}")

        if self.upstream is not None:
            try:
                await self.upstream.close()
            except Exception as e:
                logger.warning(f"[{self.session_id}] Upstream close failed: {e}")

        if self.client.is_open:
            await self.client.close(INTERNAL_ERROR_CLOSE if self.error else NORMAL_CLOSE)

        logger.info(f"[{self.session_id}] Session {self.state.value}")
