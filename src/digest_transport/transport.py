"""A `requests` transport adapter that answers HTTP Digest challenges.

The adapter wraps another adapter (by default a plain `HTTPAdapter`). A request
that comes back ``401`` with a ``WWW-Authenticate: Digest`` challenge is
re-sent exactly once with computed credentials and the same body. The resulting
``Authorization`` value is cached and attached to later requests until the
server challenges again.

Example::

    transport = DigestTransport("admin", "secret")
    session = transport.client()
    session.get("https://router.local/tr64desc.xml")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from typing import Any
from urllib.parse import urlsplit

import requests
from requests.adapters import BaseAdapter, HTTPAdapter

from .challenge import parse_challenge
from .credentials import Credentials, request_uri
from .exceptions import (
    ChallengeParseFailed,
    MalformedChallenge,
    NoTransportConfigured,
    RequestBodyTooLarge,
    UnsupportedAlgorithm,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_REPLAY_BYTES = 10 * 1024 * 1024
_DRAIN_CHUNK = 64 * 1024
_DEFAULT_PORTS = {"http": 80, "https": 443}

Origin = tuple[str, str, int | None]


def origin_of(url: str) -> Origin:
    """Return the ``(scheme, host, port)`` a cached credential is bound to."""

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    return scheme, (parts.hostname or "").lower(), parts.port or _DEFAULT_PORTS.get(scheme)


class _ReplayBuffer:
    """Bounded in-memory copy of a streamed request body.

    Once the body grows past ``limit`` the copy is dropped and the buffer is
    marked as overflowed; the body itself keeps flowing to the server.
    """

    def __init__(self, limit: int) -> None:
        self._data = bytearray()
        self.limit = limit
        self.overflowed = False

    def write(self, chunk: bytes | str) -> None:
        if self.overflowed:
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if len(self._data) + len(chunk) > self.limit:
            self.overflowed = True
            self._data = bytearray()
            return
        self._data.extend(chunk)

    def getvalue(self) -> bytes:
        return bytes(self._data)


class _TeeReader:
    """File-like wrapper that copies everything read into a replay buffer."""

    def __init__(self, raw: Any, buffer: _ReplayBuffer) -> None:
        self._raw = raw
        self.buffer = buffer

    def read(self, amt: int | None = -1) -> Any:
        chunk = self._raw.read() if amt is None or amt < 0 else self._raw.read(amt)
        if chunk:
            self.buffer.write(chunk)
        return chunk

    def drain(self) -> None:
        while not self.buffer.overflowed and self.read(_DRAIN_CHUNK):
            pass

    def close(self) -> None:
        close = getattr(self._raw, "close", None)
        if close is not None:
            close()


class _TeeIterator:
    """Iterator wrapper that copies every chunk of a chunked body."""

    def __init__(self, chunks: Iterable[Any], buffer: _ReplayBuffer) -> None:
        self._chunks = iter(chunks)
        self.buffer = buffer

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        chunk = next(self._chunks)
        if chunk:
            self.buffer.write(chunk)
        return chunk

    def drain(self) -> None:
        for _ in self:
            if self.buffer.overflowed:
                break


class DigestTransport(BaseAdapter):
    """Transport adapter that takes care of HTTP digest authentication."""

    def __init__(
        self,
        username: str,
        password: str,
        transport: BaseAdapter | None = None,
        *,
        max_replay_bytes: int = DEFAULT_MAX_REPLAY_BYTES,
    ) -> None:
        super().__init__()
        self.username = username
        self.password = password
        self.transport: BaseAdapter | None = transport if transport is not None else HTTPAdapter()
        self.max_replay_bytes = max_replay_bytes
        self._auth: tuple[Origin, str] | None = None
        self._auth_lock = threading.Lock()

    @property
    def authorization(self) -> str | None:
        """The cached ``Authorization`` value, if a challenge was answered."""

        with self._auth_lock:
            return self._auth[1] if self._auth else None

    def authorization_for(self, url: str) -> str | None:
        """The cached ``Authorization`` value if it was negotiated with ``url``'s origin."""

        with self._auth_lock:
            if self._auth and self._auth[0] == origin_of(url):
                return self._auth[1]
        return None

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        transport = self.transport
        if transport is None:
            raise NoTransportConfigured("Digest transport has no underlying transport")

        outgoing = request.copy()
        tee = self._capture_body(outgoing)
        cached = self.authorization_for(outgoing.url or "")
        if cached:
            logger.debug("Reusing cached digest credentials for %s %s", outgoing.method, outgoing.url)
            outgoing.headers["Authorization"] = cached

        response = transport.send(outgoing, **kwargs)
        if response.status_code != 401:
            return response

        if tee is not None:
            tee.drain()
            if tee.buffer.overflowed:
                logger.warning(
                    "Cannot answer digest challenge from %s: body exceeds %d byte replay limit",
                    outgoing.url,
                    tee.buffer.limit,
                )
                response.content
                response.close()
                raise RequestBodyTooLarge(
                    f"Request body exceeds the {tee.buffer.limit} byte replay limit",
                    status_code=response.status_code,
                    details=tee.buffer.limit,
                    response=response,
                )
        try:
            challenge = parse_challenge(response.headers.get("WWW-Authenticate", ""))
        except MalformedChallenge as exc:
            logger.warning("Unable to parse digest challenge from %s: %s", outgoing.url, exc)
            raise ChallengeParseFailed(
                f"Failed to parse challenge: {exc}",
                status_code=response.status_code,
                details=exc.details,
                response=response,
            ) from exc
        # The 401 body is no longer needed; read it so the connection can be reused.
        response.content
        response.close()

        if challenge.is_stale:
            logger.info("Server reported a stale nonce for realm %s; re-authorizing", challenge.realm)
        credentials = Credentials.from_challenge(
            challenge,
            username=self.username,
            password=self.password,
            method=outgoing.method or "GET",
            digest_uri=request_uri(outgoing.url or ""),
        )
        try:
            auth = credentials.authorize()
        except UnsupportedAlgorithm as exc:
            logger.warning("Digest challenge from %s is unsupported: %s", outgoing.url, exc)
            exc.status_code = response.status_code
            exc.response = response
            raise
        with self._auth_lock:
            self._auth = (origin_of(outgoing.url or ""), auth)
        logger.debug("Answering digest challenge for realm %s", challenge.realm)

        retry = outgoing.copy()
        retry.headers["Authorization"] = auth
        if tee is not None:
            retry.body = self._replay_body(retry, tee)
        retry_response = transport.send(retry, **kwargs)
        retry_response.history.append(response)
        return retry_response

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()

    def client(self) -> requests.Session:
        """Return a session that routes every HTTP(S) request through this transport."""

        if self.transport is None:
            raise NoTransportConfigured("Digest transport has no underlying transport")
        session = requests.Session()
        session.mount("http://", self)
        session.mount("https://", self)
        return session

    # Internal helpers -------------------------------------------------------
    def _capture_body(self, request: requests.PreparedRequest) -> _TeeReader | _TeeIterator | None:
        body = request.body
        if body is None or isinstance(body, (bytes, str)):
            return None
        buffer = _ReplayBuffer(self.max_replay_bytes)
        tee: _TeeReader | _TeeIterator
        if hasattr(body, "read"):
            tee = _TeeReader(body, buffer)
        else:
            tee = _TeeIterator(body, buffer)
        request.body = tee
        return tee

    @staticmethod
    def _replay_body(request: requests.PreparedRequest, tee: _TeeReader | _TeeIterator) -> Any:
        data = tee.buffer.getvalue()
        if "Content-Length" in request.headers:
            return data
        # Chunked transfer: keep the body iterable so the adapter still streams it.
        return iter([data])
