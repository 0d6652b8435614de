"""
Error taxonomy.

NotFound errors surface immediately and are never retried. Exceptions raised
by storage backends or speech providers propagate as-is; CollaboratorError
covers problems switchboard itself detects with a collaborator.
"""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base class for everything raised by switchboard itself."""


class SessionNotFoundError(SwitchboardError, KeyError):
    """An operation referenced a session id the storage does not hold."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return self.args[0]


class CollaboratorError(SwitchboardError):
    """A pluggable collaborator (speech-to-text, text-to-speech) failed."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class CollaboratorUnavailableError(CollaboratorError):
    """No collaborator is configured and mock fallback is disabled."""
