"""HTTP Digest authentication client.

This module provides :class:`DigestAuthClient`, which answers ``Digest``
challenges per :rfc:`7616`. Supported algorithms are ``MD5`` (the default
when the challenge names none), ``SHA-256`` and their ``-sess`` variants;
only the ``auth`` quality of protection is implemented. Challenges that offer neither ``auth`` nor a
legacy (no ``qop``) exchange are rejected so that the interceptor reports
them as unrecognised.

The nonce count increases with every stamped request and restarts whenever
the server issues a new nonce.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any, Callable

import httpx

from dgauth.auth.base import AuthClient
from dgauth.auth.challenge import Challenge

_ALGORITHMS: dict[str, Callable[..., Any]] = {
    "md5": hashlib.md5,
    "md5-sess": hashlib.md5,
    "sha-256": hashlib.sha256,
    "sha-256-sess": hashlib.sha256,
}


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _qop_options(challenge: Challenge) -> list[str]:
    raw = challenge.params.get("qop", "")
    return [opt.strip().lower() for opt in raw.split(",") if opt.strip()]


class DigestAuthClient(AuthClient):
    """Stamp requests with HTTP Digest responses."""

    def __init__(self) -> None:
        super().__init__()
        self._nonce_count = 0

    @property
    def scheme(self) -> str:
        return "digest"

    def accepts(self, challenge: Challenge) -> bool:
        if challenge.scheme != self.scheme or "nonce" not in challenge.params:
            return False
        algorithm = challenge.params.get("algorithm", "MD5").lower()
        if algorithm not in _ALGORITHMS:
            return False
        qop = _qop_options(challenge)
        return not qop or "auth" in qop

    def configure(self, challenge: Challenge) -> bool:
        previous = self._challenge
        accepted = super().configure(challenge)
        if accepted and (previous is None or previous.params.get("nonce") != challenge.params.get("nonce")):
            self._nonce_count = 0
        return accepted

    def reset(self) -> None:
        super().reset()
        self._nonce_count = 0

    def authorization(self, username: str, password: str, request: httpx.Request) -> str:
        """Compute the ``Digest`` credentials for *request*.

        ``response = H(HA1:nonce:nc:cnonce:qop:H(A2))`` with
        ``HA1 = H(username:realm:password)`` and ``A2 = method:uri``; without
        ``qop`` the legacy ``H(HA1:nonce:H(A2))`` form is used. The ``-sess``
        algorithms use ``HA1 = H(H(username:realm:password):nonce:cnonce)``.
        """
        challenge = self._challenge
        assert challenge is not None, "authorization() requires a configured client"

        params = challenge.params
        algorithm = params.get("algorithm", "MD5")
        hash_fn = _ALGORITHMS[algorithm.lower()]

        def digest(value: str) -> str:
            return hash_fn(value.encode("utf-8")).hexdigest()

        realm = params.get("realm", "")
        nonce = params["nonce"]
        uri = request.url.raw_path.decode("ascii")
        cnonce = secrets.token_hex(8)

        ha1 = digest(f"{username}:{realm}:{password}")
        if algorithm.lower().endswith("-sess"):
            ha1 = digest(f"{ha1}:{nonce}:{cnonce}")
        ha2 = digest(f"{request.method}:{uri}")

        fields = [
            f"username={_quote(username)}",
            f"realm={_quote(realm)}",
            f"nonce={_quote(nonce)}",
            f"uri={_quote(uri)}",
        ]

        if "auth" in _qop_options(challenge):
            self._nonce_count += 1
            nc = f"{self._nonce_count:08x}"
            response = digest(f"{ha1}:{nonce}:{nc}:{cnonce}:auth:{ha2}")
            fields.append(f'response="{response}"')
            fields.extend(["qop=auth", f"nc={nc}", f'cnonce="{cnonce}"'])
        else:
            response = digest(f"{ha1}:{nonce}:{ha2}")
            fields.append(f'response="{response}"')
            if algorithm.lower().endswith("-sess"):
                fields.append(f'cnonce="{cnonce}"')

        fields.append(f"algorithm={algorithm}")
        if "opaque" in params:
            fields.append(f"opaque={_quote(params['opaque'])}")

        return "Digest " + ", ".join(fields)
