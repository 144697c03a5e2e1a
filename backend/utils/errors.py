# backend/utils/errors.py
"""
Error taxonomy for voice relay sessions.

Every failure that ends a session is raised as one of these so callers and
tests can branch on the kind of failure instead of its message text.
"""
import json


class RelayError(Exception):
    """Base class for failures that terminate a relay session."""

    default_message = "Voice session failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class SetupError(RelayError):
    """Session could not be set up (bad parameters, missing credentials, prompt failure)."""

    default_message = "Voice session setup failed"


class UpstreamError(RelayError):
    """Transport failure on the voice agent side of the relay."""

    default_message = "Voice agent connection failed"


class ClientError(RelayError):
    """Transport failure on the browser side of the relay."""

    default_message = "Client connection failed"


def error_frame(error: RelayError) -> str:
    """Render the JSON frame sent to the client when a session fails."""
    return json.dumps({"type": "Error", "error": error.message})
