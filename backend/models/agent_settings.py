# ========================================
# models/agent_settings.py - Voice agent "Settings" payload
# ========================================

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class AudioInput(_Frozen):
    encoding: str = "linear16"
    sample_rate: int = 48000


class AudioOutput(_Frozen):
    encoding: str = "linear16"
    sample_rate: int = 24000
    container: str = "none"


class AudioSettings(_Frozen):
    input: AudioInput = Field(default_factory=AudioInput)
    output: AudioOutput = Field(default_factory=AudioOutput)


class ProviderBlock(_Frozen):
    provider: Dict[str, Any]


class ThinkBlock(_Frozen):
    provider: Dict[str, Any]
    prompt: str


class AgentBlock(_Frozen):
    language: str = "en"
    speak: ProviderBlock
    listen: ProviderBlock
    think: ThinkBlock
    greeting: str


class AgentSettings(_Frozen):
    """First message sent to the voice agent on every session."""

    type: str = "Settings"
    audio: AudioSettings = Field(default_factory=AudioSettings)
    agent: AgentBlock

    def to_json(self) -> str:
        return self.model_dump_json()
