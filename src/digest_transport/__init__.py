"""HTTP Digest authentication transport for requests."""
from .challenge import Challenge, parse_challenge
from .client import DigestClient
from .config import ClientConfig
from .credentials import Credentials
from .exceptions import DigestError
from .transport import DigestTransport

__all__ = [
    "Challenge",
    "ClientConfig",
    "Credentials",
    "DigestClient",
    "DigestError",
    "DigestTransport",
    "parse_challenge",
]
