"""Response handling for requests sent through a `DigestTransport`-mounted session."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from requests import Response, Session

from .exceptions import AuthenticationError, RequestError, UnexpectedResponseError

_PREVIEW_CHARS = 200


@dataclass(slots=True)
class HttpResponse:
    """Decoded body and metadata of a successful request.

    ``challenged`` is true when the server answered the first attempt with a
    Digest challenge and the transport had to re-send the request.
    """

    status_code: int
    data: Any
    headers: Mapping[str, str]
    challenged: bool = False


def was_challenged(response: Response) -> bool:
    return any(previous.status_code == 401 for previous in response.history)


def ensure_success(response: Response) -> None:
    """Map a final non-2xx status onto the client's exception hierarchy.

    A 401 reaching this point means the transport already answered the
    challenge once and the server still refused, so the credentials are wrong.
    """

    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 401:
        raise AuthenticationError(
            "Server rejected the digest credentials",
            status_code=status,
            details=response.headers.get("WWW-Authenticate"),
            response=response,
        )
    body = response.text
    raise RequestError(
        f"{response.request.method if response.request else 'Request'} {response.url} "
        f"returned {status}: {body[:_PREVIEW_CHARS]}",
        status_code=status,
        details=body,
        response=response,
    )


def parse_json(response: Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UnexpectedResponseError(
            f"Expected a JSON body from {response.url}",
            status_code=response.status_code,
            details=response.text[:_PREVIEW_CHARS],
            response=response,
        ) from exc


def request(
    session: Session,
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    headers: MutableMapping[str, str] | None = None,
    json_payload: Any | None = None,
    data_payload: Any | None = None,
    expect_json: bool = False,
    timeout: float | tuple[float, float] | None = None,
    verify: bool | str = True,
) -> HttpResponse:
    """Send one request and decode the body as text, or as JSON with ``expect_json``.

    Empty bodies decode to ``None``.
    """

    response = session.request(
        method=method,
        url=url,
        params=params,
        headers=headers,
        json=json_payload,
        data=data_payload,
        timeout=timeout,
        verify=verify,
    )
    ensure_success(response)

    data: Any = None
    if response.content:
        data = parse_json(response) if expect_json else response.text

    return HttpResponse(
        status_code=response.status_code,
        data=data,
        headers=response.headers,
        challenged=was_challenged(response),
    )
