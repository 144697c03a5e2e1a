# backend/models/persona.py
"""
Interviewer personas and the catalogue they are selected from.
"""
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from utils.logger import get_logger

logger = get_logger("PersonaCatalogue")


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    return value


class Persona(BaseModel):
    """A selectable interviewer identity and the voice it speaks with."""

    model_config = ConfigDict(frozen=True)

    name: str
    speak: Mapping[str, Any]  # voice agent "speak" block, e.g. {"provider": {...}}

    @field_validator("speak")
    @classmethod
    def freeze_speak(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    def speak_block(self) -> Dict[str, Any]:
        """Plain, independent copy of the voice block for a Settings payload."""
        return _thaw(self.speak)


class PersonaCatalogue:
    """Read-only, ordered collection of personas. The first entry is the default."""

    def __init__(self, personas: Iterable[Persona]):
        self._personas: Tuple[Persona, ...] = tuple(personas)
        if not self._personas:
            raise ValueError("Persona catalogue needs at least one entry")

    @property
    def default(self) -> Persona:
        return self._personas[0]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self._personas)

    def select(self, name: Optional[str]) -> Persona:
        """Exact-name lookup, falling back to the default persona."""
        if not name:
            return self.default
        for persona in self._personas:
            if persona.name == name:
                return persona
        logger.warning(
            f"Requested interviewer '{name}' not found, defaulting to {self.default.name}"
        )
        return self.default


DEFAULT_INTERVIEWERS: Tuple[Persona, ...] = (
    Persona(
        name="Kevin McCannly",
        speak={
            "provider": {
                "type": "eleven_labs",
                "model_id": "eleven_multilingual_v2",
                "voice_id": "onwK4e9ZLuTAKqWW03F9",
            }
        },
    ),
    Persona(
        name="Michael Crickett",
        speak={"provider": {"type": "deepgram", "model": "aura-2-odysseus-en"}},
    ),
    Persona(
        name="Tom Bradshaw",
        speak={"provider": {"type": "deepgram", "model": "aura-arcas-en"}},
    ),
    Persona(
        name="Lauren Ashford",
        speak={"provider": {"type": "deepgram", "model": "aura-2-delia-en"}},
    ),
)


def default_catalogue() -> PersonaCatalogue:
    return PersonaCatalogue(DEFAULT_INTERVIEWERS)
