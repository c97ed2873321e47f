"""Parsing of ``WWW-Authenticate: Digest`` challenges."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass

from .exceptions import MalformedChallenge

logger = logging.getLogger(__name__)

SCHEME_PREFIX = "Digest "
DEFAULT_ALGORITHM = "MD5"
CHALLENGE_KEYS = frozenset({"realm", "domain", "nonce", "opaque", "stale", "algorithm", "qop"})

_WHITESPACE = " \t\r\n"
_ESCAPED_CHAR = re.compile(r"\\(.)")


@dataclass(frozen=True, slots=True)
class Challenge:
    """Server-issued parameters needed to compute digest credentials."""

    realm: str = ""
    domain: str = ""
    nonce: str = ""
    opaque: str = ""
    stale: str = ""
    algorithm: str = DEFAULT_ALGORITHM
    qop: str = ""

    @property
    def is_stale(self) -> bool:
        return self.stale.lower() == "true"

    @property
    def qop_options(self) -> tuple[str, ...]:
        return tuple(token.strip() for token in self.qop.split(",") if token.strip())

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def parse_challenge(header: str, *, strict: bool = True) -> Challenge:
    """Parse a raw ``WWW-Authenticate`` value into a `Challenge`.

    Values may be bare tokens or double-quoted strings; commas inside quotes do
    not split parameters. With ``strict`` (the default) any parameter outside
    `CHALLENGE_KEYS` raises `MalformedChallenge`; otherwise it is ignored.
    """

    text = (header or "").strip(_WHITESPACE)
    if not text.startswith(SCHEME_PREFIX):
        raise MalformedChallenge("Challenge does not use the Digest scheme", details=header)

    fields: dict[str, str] = {}
    for item in _split_params(text[len(SCHEME_PREFIX) :]):
        if not item.strip(_WHITESPACE):
            continue
        key, sep, raw_value = item.partition("=")
        if not sep:
            raise MalformedChallenge(f"Challenge parameter without value: {item.strip()!r}", details=header)
        key = key.strip(_WHITESPACE).lower()
        if key not in CHALLENGE_KEYS:
            if strict:
                raise MalformedChallenge(f"Unknown challenge parameter {key!r}", details=header)
            logger.debug("Ignoring unknown digest challenge parameter %s", key)
            continue
        fields[key] = _unquote(raw_value.strip(_WHITESPACE))

    if not fields:
        raise MalformedChallenge("Challenge carries no parameters", details=header)
    fields.setdefault("algorithm", DEFAULT_ALGORITHM)
    return Challenge(**fields)


def _split_params(text: str) -> list[str]:
    items: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif in_quotes and char == "\\":
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            items.append("".join(current))
            current = []
            continue
        current.append(char)
    if in_quotes:
        raise MalformedChallenge("Unterminated quoted value in challenge", details=text)
    items.append("".join(current))
    return items


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return _ESCAPED_CHAR.sub(r"\1", value[1:-1])
    return value.strip('"')
