from enum import Enum
from typing import Mapping, Optional, Union

from pydantic import BaseModel, Field

from utils.errors import SetupError

# A WebSocket frame as seen by the relay: str for text, bytes for binary.
Frame = Union[str, bytes]


class SessionKind(str, Enum):
    TALK = "talk"
    INTERVIEW = "interview"


class SessionState(str, Enum):
    CONNECTING = "connecting"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    CLOSED = "closed"
    ERRORED = "errored"


TERMINAL_STATES = frozenset({SessionState.CLOSED, SessionState.ERRORED})


class InterviewParams(BaseModel):
    role: str = Field(..., min_length=1, examples=["Backend Engineer"])
    interviewer_name: Optional[str] = Field(None, description="must match a catalogue entry")

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "InterviewParams":
        """Build params from an upgrade request query string.

        Raises:
            SetupError: when ``role`` is missing or blank.
        """
        role = (query.get("role") or "").strip()
        if not role:
            raise SetupError("Missing required parameter: role")
        interviewer_name = (query.get("interviewerName") or "").strip() or None
        return cls(role=role, interviewer_name=interviewer_name)
