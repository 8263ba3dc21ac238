"""HTTP Basic authentication client.

This module provides :class:`BasicAuthClient`, which answers ``Basic``
challenges. The ``username:password`` pair is Base64-encoded and sent as an
``Authorization: Basic <encoded>`` header per :rfc:`7617`.

See Also:
    :class:`dgauth.auth.base.AuthClient` for the base interface.
"""

from __future__ import annotations

import base64

import httpx

from dgauth.auth.base import AuthClient
from dgauth.auth.challenge import Challenge
from dgauth.exceptions import InvalidUsageError


class BasicAuthClient(AuthClient):
    """Stamp requests with HTTP Basic credentials."""

    @property
    def scheme(self) -> str:
        return "basic"

    def accepts(self, challenge: Challenge) -> bool:
        if challenge.scheme != self.scheme:
            return False
        charset = challenge.params.get("charset", "utf-8").lower()
        return charset in ("utf-8", "utf8")

    def authorization(self, username: str, password: str, request: httpx.Request) -> str:
        """Return ``Basic <base64(username:password)>``.

        Raises:
            InvalidUsageError: If the username contains a colon, which RFC 7617
                forbids because it would be ambiguous on the server side.
        """
        if ":" in username:
            raise InvalidUsageError("Basic auth usernames must not contain a colon")
        raw = f"{username}:{password}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"
