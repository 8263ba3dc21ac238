"""Auth manager -- scheme registry, challenge parser and active stamping client.

The :class:`AuthManager` maps challenge schemes (``"digest"``, ``"basic"``)
to :class:`~dgauth.auth.base.AuthClient` instances. When the interceptor
receives a ``401``, :meth:`AuthManager.parse_header` reads the challenge
header, picks the first challenge with a registered client that accepts
it, and configures that client. From then on the manager itself behaves as
the configured :class:`~dgauth.auth.base.AuthClient`: :meth:`is_configured`
and :meth:`process_request` delegate to the active client.

For most use cases, call :func:`create_default_manager`.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import httpx

from dgauth.auth.base import AuthClient
from dgauth.auth.challenge import Challenge, parse_challenges
from dgauth.exceptions import ConfigError

logger = logging.getLogger(__name__)


class AuthManager:
    """Registry and dispatcher for credential-stamping clients.

    Args:
        challenge_header: Name of the response header carrying challenges.

    Example::

        manager = AuthManager()
        manager.register(DigestAuthClient())
        if manager.parse_header(response):
            manager.process_request("alice", "pw1", request)
    """

    def __init__(self, challenge_header: str = "WWW-Authenticate") -> None:
        self._challenge_header = challenge_header
        self._clients: dict[str, AuthClient] = {}
        self._active: Optional[AuthClient] = None

    def register(self, client: AuthClient) -> None:
        """Register *client* under its scheme, in order of preference.

        A client registered for an already-known scheme replaces it.
        """
        self._clients[client.scheme] = client

    def get_client(self, scheme: str) -> AuthClient:
        """Return the client registered for *scheme*.

        Raises:
            ConfigError: If no client is registered for *scheme*.
        """
        client = self._clients.get(scheme.lower())
        if client is None:
            available = ", ".join(sorted(self._clients)) or "(none)"
            raise ConfigError(
                f"No auth client registered for scheme '{scheme}'. "
                f"Available schemes: {available}"
            )
        return client

    def list_schemes(self) -> list[str]:
        return list(self._clients)

    @property
    def active(self) -> Optional[AuthClient]:
        """The client configured by the last recognised challenge."""
        return self._active

    # ------------------------------------------------------------------ #
    # Challenge parsing
    # ------------------------------------------------------------------ #

    def parse_header(self, response: Optional[httpx.Response]) -> bool:
        """Configure a client from the challenge header of *response*.

        Returns:
            ``True`` when a registered client accepted one of the
            challenges, ``False`` when the header is missing or names no
            supported scheme.
        """
        if response is None:
            return False
        header = response.headers.get(self._challenge_header)
        if not header:
            logger.debug("No %s header on %s response", self._challenge_header, response.status_code)
            return False
        challenge = self._select(parse_challenges(header))
        if challenge is None:
            logger.debug("No supported scheme in challenge header: %s", header)
            return False
        client = self._clients[challenge.scheme]
        client.configure(challenge)
        self._active = client
        logger.debug("Configured %s authentication (realm=%r)", challenge.scheme, challenge.realm)
        return True

    def _select(self, challenges: Iterable[Challenge]) -> Optional[Challenge]:
        offered = list(challenges)
        for scheme, client in self._clients.items():
            for challenge in offered:
                if challenge.scheme == scheme and client.accepts(challenge):
                    return challenge
        return None

    # ------------------------------------------------------------------ #
    # AuthClient facade
    # ------------------------------------------------------------------ #

    def is_configured(self) -> bool:
        return self._active is not None and self._active.is_configured()

    def process_request(self, username: str, password: str, request: httpx.Request) -> None:
        """Stamp *request* through the active client; a no-op when unconfigured."""
        if self._active is not None:
            self._active.process_request(username, password, request)

    def reset(self) -> None:
        """Forget the active challenge (e.g. after sign-out)."""
        if self._active is not None:
            self._active.reset()
        self._active = None


def create_default_manager(
    schemes: Iterable[str] = ("digest", "basic"),
    challenge_header: str = "WWW-Authenticate",
) -> AuthManager:
    """Create an :class:`AuthManager` loaded with the built-in clients.

    Args:
        schemes: Schemes to enable, in order of preference. Known values are
            ``"digest"`` and ``"basic"``.
        challenge_header: Response header carrying the challenge.

    Raises:
        ConfigError: If *schemes* names an unknown scheme.
    """
    from dgauth.plugins.basic import BasicAuthClient
    from dgauth.plugins.digest import DigestAuthClient

    builtin: dict[str, type[AuthClient]] = {
        "digest": DigestAuthClient,
        "basic": BasicAuthClient,
    }

    manager = AuthManager(challenge_header=challenge_header)
    for scheme in schemes:
        client_cls = builtin.get(scheme.lower())
        if client_cls is None:
            raise ConfigError(
                f"Unknown auth scheme '{scheme}'. Built-in schemes: {', '.join(builtin)}"
            )
        manager.register(client_cls())
    return manager
