"""Configuration helpers for the digest client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .transport import DEFAULT_MAX_REPLAY_BYTES


@dataclass(slots=True)
class ClientConfig:
    """Typed configuration for `DigestClient`."""

    base_url: str
    verify_ssl: bool | str = True
    timeout: float = 30.0
    default_headers: Mapping[str, str] | None = None
    query_defaults: Mapping[str, str] | None = None
    max_replay_bytes: int = DEFAULT_MAX_REPLAY_BYTES

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "*/*"}
        if self.default_headers:
            headers.update(self.default_headers)
        return headers

    def resolved_query(self) -> dict[str, str]:
        return dict(self.query_defaults or {})
