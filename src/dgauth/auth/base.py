"""Abstract base class for credential-stamping auth clients.

An :class:`AuthClient` answers one challenge scheme. It starts
unconfigured; :meth:`AuthClient.configure` is called with the server's
:class:`~dgauth.auth.challenge.Challenge` when a ``401`` names its scheme.
Once configured, :meth:`AuthClient.process_request` stamps outgoing requests
with credentials (header injection) and is a no-op otherwise.

To implement a new scheme, subclass :class:`AuthClient`, set the
:attr:`~AuthClient.scheme` property, and implement
:meth:`~AuthClient.authorization`. Override :meth:`~AuthClient.accepts` to
reject challenges the client cannot answer (e.g. an unsupported digest
algorithm).

See Also:
    :class:`~dgauth.auth.manager.AuthManager` for scheme registration and
    challenge dispatch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from dgauth.auth.challenge import Challenge


class AuthClient(ABC):
    """Base class for auth schemes that stamp credentials onto requests."""

    def __init__(self) -> None:
        self._challenge: Optional[Challenge] = None

    @property
    @abstractmethod
    def scheme(self) -> str:
        """Return the lower-cased challenge scheme this client answers (e.g. ``"digest"``)."""
        ...

    @property
    def challenge(self) -> Optional[Challenge]:
        """The challenge this client was last configured with."""
        return self._challenge

    def accepts(self, challenge: Challenge) -> bool:
        """Return whether this client can answer *challenge*."""
        return challenge.scheme == self.scheme

    def configure(self, challenge: Challenge) -> bool:
        """Adopt *challenge* for subsequent requests.

        Returns:
            ``True`` when the challenge was accepted.
        """
        if not self.accepts(challenge):
            return False
        self._challenge = challenge
        return True

    def reset(self) -> None:
        self._challenge = None

    def is_configured(self) -> bool:
        """Report whether a stamping scheme is set."""
        return self._challenge is not None

    def process_request(self, username: str, password: str, request: httpx.Request) -> None:
        """Stamp *request* in place with an ``Authorization`` header.

        Does nothing when the client is unconfigured or no username is known.
        """
        if not self.is_configured() or not username:
            return
        request.headers["Authorization"] = self.authorization(username, password, request)

    @abstractmethod
    def authorization(self, username: str, password: str, request: httpx.Request) -> str:
        """Compute the ``Authorization`` header value for *request*.

        Only called while the client is configured.
        """
        ...
