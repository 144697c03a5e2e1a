# ========================================
# config.py - Environment driven settings
# ========================================

from functools import lru_cache
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---------- Voice Agent (Deepgram) --------------------------------- #
    deepgram_api_key: str = Field(
        "", validation_alias=AliasChoices("deepgram_api_key", "deepgram_key")
    )
    voice_agent_url: str = "wss://agent.deepgram.com/v1/agent/converse"
    voice_agent_connect_timeout: float = 10.0
    voice_agent_keepalive_seconds: float = 5.0
    voice_agent_max_pending_frames: int = 256

    # ---------- Interviewer Prompt (Groq) ------------------------------ #
    groq_api_key: str = ""
    interviewer_prompt_model: str = "openai/gpt-oss-120b"
    interviewer_prompt_temperature: float = 0.7
    interviewer_prompt_max_tokens: int = 3000
    interviewer_prompt_timeout: float = 60.0

    # ---------- Server ------------------------------------------------- #
    host: str = "0.0.0.0"
    port: int = 3001

    # ---------- CORS --------------------------------------------------- #
    allowed_origins: str = "http://localhost:5173,https://ai-show-theta.vercel.app,https://aishow.studio"

    # ---------- Logging ------------------------------------------------ #
    log_level: str = "INFO"
    log_format: str = "console"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
