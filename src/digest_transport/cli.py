"""Command-line interface for issuing digest-authenticated HTTP requests."""
from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install it via "
        "'pip install rich' to enable this command."
    ) from exc

from .client import DigestClient
from .exceptions import DigestError, RequestError

app = typer.Typer(help="HTTP Digest authentication CLI.", no_args_is_help=True)

console = Console(force_terminal=False, color_system=None)


@app.callback()
def main() -> None:
    """Issue HTTP requests that answer Digest challenges transparently."""


def _env_verify_default() -> bool:
    # Accept common truthy/falsey representations (1/0, true/false, yes/no).
    env_verify = os.getenv("DIGEST_VERIFY_SSL")
    if env_verify is None:
        return True
    return env_verify.strip().lower() not in {"0", "false", "no", "off"}


def _resolve_verify(verify_ssl: bool, cert_path: Path | None) -> bool | str:
    if not cert_path:
        return verify_ssl
    expanded_cert = cert_path.expanduser()
    if not expanded_cert.exists():
        raise typer.BadParameter("Certificate file not found for --cert option.")
    if not verify_ssl:
        raise typer.BadParameter("Cannot combine --cert with --no-verify.")
    return str(expanded_cert)


def _parse_headers(values: Sequence[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header '{raw}' must be in 'Name: value' form.")
        headers[name.strip()] = value.strip()
    return headers


def _build_client(
    url: str,
    username: str | None,
    password: str | None,
    verify_ssl: bool,
    cert_path: Path | None,
    timeout: float,
) -> DigestClient:
    if not username or not password:
        raise typer.BadParameter("--username and --password are required for digest auth.")
    return DigestClient(
        base_url=url,
        username=username,
        password=password,
        verify_ssl=_resolve_verify(verify_ssl, cert_path),
        timeout=timeout,
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _render_headers(headers: Mapping[str, str]) -> None:
    table = Table(
        title="Response headers",
        box=box.SIMPLE,
        show_lines=False,
        header_style="bold cyan",
    )
    table.add_column("Header")
    table.add_column("Value")
    for name, value in sorted(headers.items()):
        table.add_row(name, value)
    console.print(table)


def _handle_error(exc: DigestError) -> None:
    if exc.status_code is not None:
        message = f"Request failed (status {exc.status_code}): {exc}"
    else:
        message = f"Request failed: {exc}"
    if isinstance(exc, RequestError) and exc.details:
        message += f"\nDetails: {exc.details}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.command("request")
def request_command(
    method: str = typer.Argument(..., help="HTTP method, e.g. GET or POST."),
    url: str = typer.Argument(..., help="Absolute URL to request."),
    username: str | None = typer.Option(
        None,
        "--username",
        "-u",
        envvar="DIGEST_USERNAME",
        help="Username for digest auth.",
    ),
    password: str | None = typer.Option(
        None,
        "--password",
        "-p",
        envvar="DIGEST_PASSWORD",
        help="Password for digest auth.",
        hide_input=True,
    ),
    data: str | None = typer.Option(None, "--data", "-d", help="Request body text."),
    data_file: Path | None = typer.Option(
        None,
        "--data-file",
        help="Path to a file whose contents are sent as the request body.",
    ),
    header: list[str] = typer.Option(
        [],
        "--header",
        "-H",
        help="Extra request header in 'Name: value' form (repeatable).",
        show_default=False,
    ),
    verify_ssl: bool = typer.Option(
        _env_verify_default(),
        "--verify/--no-verify",
        help="Enable or disable TLS certificate verification.",
        show_default=True,
    ),
    cert_path: Path | None = typer.Option(
        None,
        "--cert",
        envvar="DIGEST_CA_CERT",
        help="Path to a custom CA bundle for TLS verification.",
    ),
    timeout: float = typer.Option(30.0, help="Request timeout (seconds).", show_default=True),
    show_headers: bool = typer.Option(
        False,
        "--show-headers",
        help="Render response headers as a table.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Parse the response body as JSON and pretty-print it.",
    ),
) -> None:
    """Send one request, answering a Digest challenge if the server issues one."""

    if data is not None and data_file is not None:
        raise typer.BadParameter("Use either --data or --data-file, not both.")
    body: bytes | str | None = data
    if data_file is not None:
        body = data_file.expanduser().read_bytes()
    headers = _parse_headers(header)

    with _build_client(url, username, password, verify_ssl, cert_path, timeout) as client:
        try:
            response = client.request(
                method,
                url,
                data=body,
                headers=headers,
                expect_json=output_json,
            )
        except DigestError as exc:
            _handle_error(exc)
            return

    if show_headers:
        _render_headers(response.headers)
    if output_json:
        _echo_json(response.data)
    elif response.data is not None:
        typer.echo(response.data)
