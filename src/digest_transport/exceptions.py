"""Custom exception hierarchy for the digest transport."""
from __future__ import annotations

from typing import Any


class DigestError(RuntimeError):
    """Base error for digest authentication failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
        response: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details
        self.response = response


class NoTransportConfigured(DigestError):
    """Raised when no underlying transport adapter is available."""


class MalformedChallenge(DigestError):
    """Raised when a WWW-Authenticate header cannot be parsed."""


class ChallengeParseFailed(MalformedChallenge):
    """Raised by the transport when a 401 carries an unusable challenge."""


class UnsupportedAlgorithm(DigestError):
    """Raised when a challenge asks for an algorithm or qop we do not implement."""


class RequestBodyTooLarge(DigestError):
    """Raised when a request body exceeds the replay buffer limit."""


class AuthenticationError(DigestError):
    """Raised when the server rejects the computed credentials."""


class RequestError(DigestError):
    """Raised when an HTTP request cannot be fulfilled."""


class UnexpectedResponseError(DigestError):
    """Raised when the server returns an unexpected payload structure."""
