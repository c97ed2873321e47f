"""High-level client that issues digest-authenticated requests against a base URL."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any
from urllib.parse import urljoin, urlparse

import requests
import urllib3
from requests.adapters import BaseAdapter
from urllib3.exceptions import InsecureRequestWarning

from .config import ClientConfig
from .exceptions import DigestError, RequestError
from .http import HttpResponse
from .http import request as http_request
from .transport import DEFAULT_MAX_REPLAY_BYTES, DigestTransport

logger = logging.getLogger(__name__)


class DigestClient:
    """Share one digest transport, and so one cached credential, across requests."""

    def __init__(
        self,
        *,
        base_url: str,
        username: str,
        password: str,
        verify_ssl: bool | str = True,
        timeout: float = 30.0,
        default_headers: Mapping[str, str] | None = None,
        query_defaults: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        transport: BaseAdapter | None = None,
        max_replay_bytes: int = DEFAULT_MAX_REPLAY_BYTES,
    ) -> None:
        self.config = ClientConfig(
            base_url=base_url.rstrip("/"),
            verify_ssl=verify_ssl,
            timeout=timeout,
            default_headers=default_headers,
            query_defaults=query_defaults,
            max_replay_bytes=max_replay_bytes,
        )
        self._suppress_insecure_warning_if_needed()
        self.transport = DigestTransport(
            username,
            password,
            transport,
            max_replay_bytes=self.config.max_replay_bytes,
        )
        self._session = session or requests.Session()
        self._session.mount("http://", self.transport)
        self._session.mount("https://", self.transport)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> DigestClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Public API --------------------------------------------------------------
    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        data: Any | None = None,
        json_payload: Any | None = None,
        headers: Mapping[str, str] | None = None,
        expect_json: bool = False,
    ) -> HttpResponse:
        url = self._resolve_url(path)
        merged_headers = self._prepare_headers(headers)
        merged_params = self._prepare_params(params)
        logger.info("Digest request %s %s", method.upper(), url)
        try:
            return http_request(
                self._session,
                method.upper(),
                url,
                params=merged_params,
                headers=merged_headers,
                json_payload=json_payload,
                data_payload=data,
                expect_json=expect_json,
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
            )
        except DigestError:
            raise
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise RequestError(f"Failed to communicate with {url}: {reason}", details=reason) from exc

    def get(self, path: str, **kwargs: Any) -> HttpResponse:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> HttpResponse:
        return self.request("POST", path, **kwargs)

    def close(self) -> None:
        self._session.close()

    # Internal helpers -------------------------------------------------------
    def _resolve_url(self, path: str) -> str:
        parsed = urlparse(path)
        if parsed.scheme and parsed.netloc:
            return path
        return urljoin(f"{self.config.base_url}/", path.lstrip("/"))

    def _prepare_headers(self, headers: Mapping[str, str] | None) -> MutableMapping[str, str]:
        merged = self.config.resolved_headers()
        if headers:
            merged.update(headers)
        return merged

    def _prepare_params(self, params: Mapping[str, str] | None) -> MutableMapping[str, str]:
        merged: MutableMapping[str, str] = self.config.resolved_query()
        if params:
            merged.update(params)
        return merged

    def _suppress_insecure_warning_if_needed(self) -> None:
        if isinstance(self.config.verify_ssl, bool) and not self.config.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)
