# backend/services/session_acceptor.py
"""
Connection Acceptor
Validates voice session upgrades and hands each one to its own RelaySession.
"""
from fastapi import WebSocket

from config import Settings
from models.agent_settings import AgentSettings
from models.persona import PersonaCatalogue
from models.session import InterviewParams, SessionKind, SessionState
from services.agent_config import build_interview_settings, build_talk_settings
from services.client_channel import ClientChannel
from services.interviewer_prompt import InterviewerPromptGenerator
from services.relay_session import INTERNAL_ERROR_CLOSE, RelaySession, UpstreamConnector
from services.voice_agent_client import require_api_key
from utils.errors import SetupError
from utils.logger import get_logger

logger = get_logger("SessionAcceptor")

POLICY_VIOLATION_CLOSE = 1008


class VoiceSessionAcceptor:
    """
    Entry point for /talk and /interview connections.

    Holds only read-only collaborators; every connection gets a fresh
    RelaySession with no state shared between sessions.
    """

    def __init__(
        self,
        settings: Settings,
        catalogue: PersonaCatalogue,
        prompt_generator: InterviewerPromptGenerator,
        connector: UpstreamConnector,
    ):
        self.settings = settings
        self.catalogue = catalogue
        self.prompt_generator = prompt_generator
        self.connector = connector

    def _session(self, client: ClientChannel, prepare, kind: SessionKind) -> RelaySession:
        return RelaySession(
            client,
            prepare,
            self.connector,
            kind=kind,
            keepalive_interval=self.settings.voice_agent_keepalive_seconds,
            max_pending_frames=self.settings.voice_agent_max_pending_frames,
        )

    def _check_credentials(self):
        """Raise SetupError when no voice agent key is configured."""
        require_api_key(self.settings.deepgram_api_key)

    async def _reject(self, client: ClientChannel, error: SetupError, code: int, tag: str) -> SessionState:
        logger.error(f"[{tag}] Rejected: {error}")
        await client.reject(error, code=code)
        return SessionState.ERRORED

    async def handle_talk(self, websocket: WebSocket) -> SessionState:
        await websocket.accept()
        client = ClientChannel(websocket)
        logger.info("[Talk] Client connected")

        try:
            self._check_credentials()
        except SetupError as e:
            return await self._reject(client, e, INTERNAL_ERROR_CLOSE, "Talk")

        async def prepare() -> AgentSettings:
            return build_talk_settings()

        return await self._session(client, prepare, SessionKind.TALK).run()

    async def handle_interview(self, websocket: WebSocket) -> SessionState:
        await websocket.accept()
        client = ClientChannel(websocket)
        logger.info("[Interview] Client connected")

        try:
            params = InterviewParams.from_query(websocket.query_params)
        except SetupError as e:
            return await self._reject(client, e, POLICY_VIOLATION_CLOSE, "Interview")

        try:
            self._check_credentials()
        except SetupError as e:
            return await self._reject(client, e, INTERNAL_ERROR_CLOSE, "Interview")

        persona = self.catalogue.select(params.interviewer_name)
        logger.info(f"[Interview] Role: {params.role} | Interviewer: {persona.name}")

        async def prepare() -> AgentSettings:
            instructions = await self.prompt_generator.generate(params.role, persona.name)
            return build_interview_settings(persona, instructions)

        return await self._session(client, prepare, SessionKind.INTERVIEW).run()
