# backend/services/agent_config.py
"""
Session Config Builder
Maps a session's parameters to the voice agent Settings payload. No I/O.
"""
from typing import Optional

from models.agent_settings import AgentBlock, AgentSettings, ProviderBlock, ThinkBlock
from models.persona import Persona
from models.session import SessionKind

LISTEN_PROVIDER = {"type": "deepgram", "version": "v1", "model": "nova-3"}
THINK_PROVIDER = {"type": "groq", "model": "openai/gpt-oss-20b"}

TALK_PERSONA = Persona(
    name="Talk",
    speak={
        "provider": {
            "type": "eleven_labs",
            "model_id": "eleven_multilingual_v2",
            "voice_id": "cgSgspJ2msm6clMCkdW9",
        }
    },
)
TALK_PROMPT = "You are a helpful assistant."
TALK_GREETING = "Hello! How may I help you?"

INTERVIEW_GREETING = "Hello, welcome to your interview."


def build_agent_settings(
    kind: SessionKind,
    persona: Optional[Persona] = None,
    instructions: Optional[str] = None,
) -> AgentSettings:
    """
    Build the Settings payload for a session.

    Args:
        kind: talk or interview
        persona: interviewer persona (interview sessions only)
        instructions: generated interviewer prompt (interview sessions only)
    """
    if kind is SessionKind.TALK:
        persona, prompt, greeting = TALK_PERSONA, TALK_PROMPT, TALK_GREETING
    else:
        if persona is None or not instructions:
            raise ValueError("Interview settings need a persona and instructions")
        prompt, greeting = instructions, INTERVIEW_GREETING

    return AgentSettings(
        agent=AgentBlock(
            speak=ProviderBlock(**persona.speak_block()),
            listen=ProviderBlock(provider=dict(LISTEN_PROVIDER)),
            think=ThinkBlock(provider=dict(THINK_PROVIDER), prompt=prompt),
            greeting=greeting,
        )
    )


def build_talk_settings() -> AgentSettings:
    return build_agent_settings(SessionKind.TALK)


def build_interview_settings(persona: Persona, instructions: str) -> AgentSettings:
    return build_agent_settings(SessionKind.INTERVIEW, persona, instructions)
