import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent
for path in (ROOT, TESTS):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("DEEPGRAM_API_KEY", "DEEPGRAM_KEY", "GROQ_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")


@pytest.fixture
def settings():
    from config import Settings

    return Settings(
        _env_file=None,
        deepgram_api_key="dg-test-key",
        groq_api_key="groq-test-key",
        interviewer_prompt_timeout=1.0,
    )
