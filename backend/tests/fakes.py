"""In-memory stand-ins for the sockets, clock and Groq client used by the relay."""
import asyncio
import json
from types import SimpleNamespace

from utils.errors import ClientError, UpstreamError

DISCONNECT = object()
CLEAN_CLOSE = object()

SETTINGS_APPLIED = json.dumps({"type": "SettingsApplied"})


class FakeClient:
    """Browser side. Queue frames with push(); end with disconnect()."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.is_open = True
        self.close_code = None

    def push(self, frame):
        self.incoming.put_nowait(frame)

    def disconnect(self):
        self.incoming.put_nowait(DISCONNECT)

    async def receive(self):
        item = await self.incoming.get()
        if item is DISCONNECT:
            self.is_open = False
            return None
        if isinstance(item, Exception):
            self.is_open = False
            raise item
        return item

    async def send(self, frame):
        if not self.is_open:
            raise ClientError("client closed")
        self.sent.append(frame)

    async def close(self, code=1000):
        self.is_open = False
        self.close_code = code

    @property
    def error_frames(self):
        frames = []
        for frame in self.sent:
            if isinstance(frame, str):
                try:
                    message = json.loads(frame)
                except ValueError:
                    continue
                if isinstance(message, dict) and message.get("type") == "Error":
                    frames.append(message)
        return frames


class FakeUpstream:
    """Voice agent side. push() frames, CLEAN_CLOSE, or an exception to raise."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = False

    def push(self, item):
        self.incoming.put_nowait(item)

    async def receive(self):
        item = await self.incoming.get()
        if item is CLEAN_CLOSE:
            return None
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, frame):
        if self.closed:
            raise UpstreamError("Voice agent connection lost")
        self.sent.append(frame)

    async def close(self):
        self.closed = True

    @property
    def keepalives(self):
        return [f for f in self.sent if f == json.dumps({"type": "KeepAlive"})]


class FakeConnector:
    """Opens FakeUpstreams, optionally held behind a gate or failing."""

    def __init__(self, gate=None, error=None, on_connect=None):
        self.gate = gate
        self.error = error
        self.on_connect = on_connect
        self.calls = 0
        self.opened = []

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        upstream = FakeUpstream()
        self.opened.append(upstream)
        if self.on_connect is not None:
            self.on_connect(upstream)
        return upstream


class ScriptedUpstream:
    """Replays a fixed script, then stays open until closed. Safe under TestClient."""

    def __init__(self, script):
        self.script = list(script)
        self.sent = []
        self.closed = False
        self._closed_event = None

    async def receive(self):
        if self.script:
            await asyncio.sleep(0)
            return self.script.pop(0)
        if self.closed:
            return None
        if self._closed_event is None:
            self._closed_event = asyncio.Event()
        await self._closed_event.wait()
        return None

    async def send(self, frame):
        self.sent.append(frame)

    async def close(self):
        self.closed = True
        if self._closed_event is not None:
            self._closed_event.set()


class ScriptedConnector:
    def __init__(self, script=()):
        self.script = list(script)
        self.opened = []

    async def __call__(self):
        upstream = ScriptedUpstream(self.script)
        self.opened.append(upstream)
        return upstream


class FakeClock:
    """Drop-in for asyncio.sleep whose time only moves on advance()."""

    def __init__(self):
        self.now = 0.0
        self._sleepers = []

    @property
    def sleepers(self):
        return len(self._sleepers)

    async def sleep(self, delay):
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, future))
        await future

    async def advance(self, seconds):
        self.now += seconds
        due = [(t, f) for t, f in self._sleepers if t <= self.now]
        self._sleepers = [(t, f) for t, f in self._sleepers if t > self.now]
        for _, future in due:
            if not future.done():
                future.set_result(None)
        for _ in range(5):
            await asyncio.sleep(0)


class FakeCompletions:
    """Mimics ``AsyncGroq().chat.completions``."""

    def __init__(self, content=None, error=None, delay=0.0, choices=True):
        self.content = content
        self.error = error
        self.delay = delay
        self.choices = choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.choices:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_groq(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)
