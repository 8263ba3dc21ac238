"""Parsing of ``WWW-Authenticate``-style challenge headers (:rfc:`7235` section 4.1).

A header may carry several challenges, each made of a scheme token followed
by comma-separated ``name=value`` parameters, where values are tokens or
quoted strings::

    Digest realm="api", qop="auth", nonce="abc", Basic realm="api"

:func:`parse_challenges` returns them in header order with lower-cased
scheme and parameter names. ``token68`` credentials (as used by some
``Bearer`` challenges) are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_QUOTED = r'"(?:[^"\\]|\\.)*"'

_SCHEME_RE = re.compile(rf"[\s,]*({_TOKEN})(?=\s|,|$)")
_PARAM_RE = re.compile(rf"\s*({_TOKEN})\s*=\s*({_QUOTED}|{_TOKEN})\s*(?:,|$)")
_TOKEN68_RE = re.compile(r"\s+[A-Za-z0-9\-._~+/]+=*\s*(?=,|$)")
_ESCAPE_RE = re.compile(r"\\(.)")


@dataclass(frozen=True)
class Challenge:
    """One authentication challenge.

    Attributes:
        scheme: Lower-cased scheme name (``"digest"``, ``"basic"``).
        params: Parameters with lower-cased names and unquoted values.
    """

    scheme: str
    params: dict[str, str] = field(default_factory=dict)

    @property
    def realm(self) -> str:
        return self.params.get("realm", "")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return _ESCAPE_RE.sub(r"\1", value[1:-1])
    return value


def parse_challenges(header: str) -> list[Challenge]:
    """Split a challenge header into :class:`Challenge` objects.

    Args:
        header: The raw header value.

    Returns:
        The parsed challenges, empty when the header holds none.
    """
    challenges: list[Challenge] = []
    pos = 0
    length = len(header)
    while pos < length:
        scheme_match = _SCHEME_RE.match(header, pos)
        if scheme_match is None:
            break
        pos = scheme_match.end()
        token68 = _TOKEN68_RE.match(header, pos)
        if token68 is not None:
            pos = token68.end()
            challenges.append(Challenge(scheme=scheme_match.group(1).lower()))
            continue
        params: dict[str, str] = {}
        while True:
            param_match = _PARAM_RE.match(header, pos)
            if param_match is None:
                break
            params[param_match.group(1).lower()] = _unquote(param_match.group(2))
            pos = param_match.end()
        challenges.append(Challenge(scheme=scheme_match.group(1).lower(), params=params))
    return challenges
