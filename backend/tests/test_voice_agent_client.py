"""VoiceAgentConnector/VoiceAgentConnection against a local websockets server."""
import asyncio
import json
import socket

import pytest
from websockets.asyncio.server import serve

from models.session import SessionState
from services.agent_config import build_talk_settings
from services.relay_session import RelaySession
from services.voice_agent_client import VoiceAgentConnector
from utils.errors import SetupError, UpstreamError

from fakes import SETTINGS_APPLIED, FakeClient

AUDIO = bytes(range(256)) * 16


class LocalAgent:
    """Runs ``handler`` as the voice agent on an ephemeral localhost port."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = []
        self.received = []

    async def _serve(self, ws):
        self.headers.append(ws.request.headers)
        await self.handler(ws, self)

    async def __aenter__(self):
        self._server = await serve(self._serve, "127.0.0.1", 0, max_size=None)
        port = self._server.sockets[0].getsockname()[1]
        self.url = f"ws://127.0.0.1:{port}"
        return self

    async def __aexit__(self, *exc):
        self._server.close()
        await self._server.wait_closed()


def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def prepare_talk():
    return build_talk_settings()


async def echo(ws, agent):
    async for frame in ws:
        await ws.send(frame)


async def close_immediately(ws, agent):
    await ws.close()


async def fail_immediately(ws, agent):
    await ws.close(code=1011, reason="agent failure")


@pytest.mark.asyncio
async def test_connect_authenticates_with_token_header():
    async with LocalAgent(close_immediately) as agent:
        connection = await VoiceAgentConnector(agent.url, "dg-test-key")()
        assert await connection.receive() is None
        await connection.close()

    assert agent.headers[0]["Authorization"] == "Token dg-test-key"


@pytest.mark.asyncio
async def test_frames_keep_their_type_and_bytes():
    large = AUDIO * 512  # past the library's default 1 MiB frame limit
    async with LocalAgent(echo) as agent:
        connection = await VoiceAgentConnector(agent.url, "dg-test-key")()
        await connection.send('{"type": "Settings", "malformed": ')
        await connection.send(large)

        assert await connection.receive() == '{"type": "Settings", "malformed": '
        assert await connection.receive() == large
        await connection.close()


@pytest.mark.asyncio
async def test_abnormal_close_raises_upstream_error():
    async with LocalAgent(fail_immediately) as agent:
        connection = await VoiceAgentConnector(agent.url, "dg-test-key")()
        with pytest.raises(UpstreamError, match="Voice agent connection lost"):
            await connection.receive()
        with pytest.raises(UpstreamError, match="Voice agent connection lost"):
            await connection.send(AUDIO)


@pytest.mark.asyncio
async def test_refused_connection_raises_upstream_error():
    connector = VoiceAgentConnector(f"ws://127.0.0.1:{unused_port()}", "dg-test-key", open_timeout=2.0)
    with pytest.raises(UpstreamError, match="Voice agent connection failed"):
        await connector()


@pytest.mark.asyncio
async def test_silent_server_hits_open_timeout():
    async def never_answer(reader, writer):
        await reader.read()
        writer.close()

    server = await asyncio.start_server(never_answer, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        connector = VoiceAgentConnector(f"ws://127.0.0.1:{port}", "dg-test-key", open_timeout=0.2)
        with pytest.raises(UpstreamError, match="Voice agent connection failed"):
            await asyncio.wait_for(connector(), timeout=5.0)
    finally:
        server.close()


@pytest.mark.asyncio
async def test_missing_key_is_a_setup_error():
    with pytest.raises(SetupError, match="DEEPGRAM_KEY not found in environment"):
        await VoiceAgentConnector("ws://127.0.0.1:1", "")()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "close_code, final_state, errors",
    [
        (1000, SessionState.CLOSED, []),
        (1011, SessionState.ERRORED, [{"type": "Error", "error": "Voice agent connection lost"}]),
    ],
)
async def test_relay_session_ends_with_agent_close(close_code, final_state, errors):
    async def agent_turn(ws, agent):
        agent.received.append(await ws.recv())
        await ws.send(SETTINGS_APPLIED)
        await ws.send(AUDIO)
        await ws.close(code=close_code)

    client = FakeClient()
    async with LocalAgent(agent_turn) as agent:
        session = RelaySession(client, prepare_talk, VoiceAgentConnector(agent.url, "dg-test-key"))
        state = await asyncio.wait_for(session.run(), timeout=5.0)

    assert state is final_state
    assert json.loads(agent.received[0])["type"] == "Settings"
    assert client.sent[:2] == [SETTINGS_APPLIED, AUDIO]
    assert client.error_frames == errors
    assert client.close_code == close_code


@pytest.mark.asyncio
async def test_relay_session_reports_unreachable_agent():
    client = FakeClient()
    connector = VoiceAgentConnector(f"ws://127.0.0.1:{unused_port()}", "dg-test-key", open_timeout=2.0)
    session = RelaySession(client, prepare_talk, connector)

    assert await asyncio.wait_for(session.run(), timeout=5.0) is SessionState.ERRORED
    assert client.error_frames == [{"type": "Error", "error": "Voice agent connection failed"}]
    assert client.close_code == 1011
