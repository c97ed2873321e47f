"""RFC 2617 digest credential computation (MD5, qop=auth or legacy)."""

from __future__ import annotations

import hashlib
import secrets
import threading
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from .challenge import Challenge
from .exceptions import UnsupportedAlgorithm

SUPPORTED_ALGORITHM = "MD5"
QOP_AUTH = "auth"


def h(data: str) -> str:
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def kd(secret: str, data: str) -> str:
    return h(f"{secret}:{data}")


def request_uri(url: str) -> str:
    """Return the digest-URI (path plus query) for an absolute request URL."""

    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        return f"{path}?{parts.query}"
    return path


def select_qop(challenge: Challenge) -> str:
    """Pick the message qop to answer a challenge with.

    ``auth`` wins whenever the server offers it; an empty offer means legacy
    RFC 2069 mode. Any other offer is passed through so `Credentials.authorize`
    can reject it.
    """

    options = challenge.qop_options
    if not options:
        return ""
    if QOP_AUTH in options:
        return QOP_AUTH
    return challenge.qop


@dataclass(slots=True)
class Credentials:
    """A digest session scoped to one server nonce."""

    username: str
    realm: str
    nonce: str
    digest_uri: str
    algorithm: str = SUPPORTED_ALGORITHM
    cnonce: str = ""
    opaque: str = ""
    message_qop: str = ""
    nonce_count: int = 0
    method: str = field(default="GET", repr=False)
    password: str = field(default="", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @classmethod
    def from_challenge(
        cls,
        challenge: Challenge,
        *,
        username: str,
        password: str,
        method: str,
        digest_uri: str,
    ) -> Credentials:
        return cls(
            username=username,
            realm=challenge.realm,
            nonce=challenge.nonce,
            digest_uri=digest_uri,
            algorithm=challenge.algorithm,
            opaque=challenge.opaque,
            message_qop=select_qop(challenge),
            method=method.upper(),
            password=password,
        )

    def ha1(self) -> str:
        return h(f"{self.username}:{self.realm}:{self.password}")

    def ha2(self) -> str:
        return h(f"{self.method}:{self.digest_uri}")

    def authorize(self, cnonce: str | None = None) -> str:
        """Compute the ``Authorization`` header value for the next request.

        Each call consumes one nonce-count, so call it once per outgoing attempt.
        """

        if self.algorithm != SUPPORTED_ALGORITHM:
            raise UnsupportedAlgorithm(f"Digest algorithm {self.algorithm!r} is not supported")
        if self.message_qop not in (QOP_AUTH, ""):
            raise UnsupportedAlgorithm(f"Digest qop {self.message_qop!r} is not supported")

        with self._lock:
            self.nonce_count += 1
            nonce_count = self.nonce_count
            if self.message_qop == QOP_AUTH:
                self.cnonce = cnonce or secrets.token_hex(8)[:16]
            response = self._response(nonce_count)

        parts = [
            f'username="{self.username}"',
            f'realm="{self.realm}"',
            f'nonce="{self.nonce}"',
            f'uri="{self.digest_uri}"',
            f'response="{response}"',
        ]
        if self.algorithm:
            parts.append(f'algorithm="{self.algorithm}"')
        if self.opaque:
            parts.append(f'opaque="{self.opaque}"')
        if self.message_qop:
            parts.append(f"qop={self.message_qop}")
            parts.append(f"nc={nonce_count:08x}")
            parts.append(f'cnonce="{self.cnonce}"')
        return "Digest " + ", ".join(parts)

    def _response(self, nonce_count: int) -> str:
        if self.message_qop == QOP_AUTH:
            return kd(
                self.ha1(),
                f"{self.nonce}:{nonce_count:08x}:{self.cnonce}:{self.message_qop}:{self.ha2()}",
            )
        return kd(self.ha1(), f"{self.nonce}:{self.ha2()}")
