"""Request/response interception and suspension of challenged requests.

:class:`RequestInterceptor` wraps every request and every failure produced
by :class:`~dgauth.client.AsyncClient`:

* outgoing requests are published as ``process.request`` so that a
  configured auth client can stamp them with credentials;
* a failure other than a ``401`` is re-raised unchanged;
* a ``401`` is published as ``process.response`` so that the orchestrator
  can flag it terminal (a 401 from the sign-in endpoint itself must not
  start another challenge). Terminal failures still update the auth client
  from their challenge header, then are re-raised;
* the challenge header is parsed. Without a recognised scheme,
  ``authentication.notFound`` is published and the failure re-raised;
* otherwise the request is suspended as a
  :class:`~dgauth.deferred.PendingRequest`. ``authentication.header``
  (carrying the pending request) is published before ``signin.required``,
  and the caller receives whatever the pending request settles with: the
  replayed response, or the original failure.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from dgauth.deferred import PendingRequest
from dgauth.events import AuthEvent, EventBus
from dgauth.exceptions import AuthError, RequestError

logger = logging.getLogger(__name__)


class ChallengeParser(Protocol):
    def parse_header(self, response: httpx.Response | None) -> bool: ...


class RequestInterceptor:
    """Publishes requests and turns authentication challenges into suspended requests.

    Args:
        bus: Event bus shared with the orchestrator and any credential UI.
        challenges: Parses the challenge header and configures the matching
            auth client; see :class:`~dgauth.auth.manager.AuthManager`.
    """

    def __init__(self, bus: EventBus, challenges: ChallengeParser) -> None:
        self._bus = bus
        self._challenges = challenges

    def process_request(self, request: httpx.Request) -> httpx.Request:
        """Publish *request* for stamping and return it."""
        self._bus.publish(AuthEvent.PROCESS_REQUEST, request)
        return request

    async def process_failure(self, failure: RequestError) -> httpx.Response:
        """Handle a failed request.

        Returns:
            The replayed response when *failure* was an authentication
            challenge that was answered.

        Raises:
            RequestError: *failure* itself in every other case.
        """
        if not isinstance(failure, AuthError) or failure.status_code != 401:
            raise failure

        self._bus.publish(AuthEvent.PROCESS_RESPONSE, failure)
        if failure.must_terminate:
            # Keep the auth client in step with the server (fresh nonce).
            self._challenges.parse_header(failure.response)
            raise failure

        logger.debug("Server has requested an authentication.")

        if not self._challenges.parse_header(failure.response):
            self._bus.publish(AuthEvent.AUTHENTICATION_NOT_FOUND, failure)
            raise failure

        assert failure.request is not None
        pending = PendingRequest(request=failure.request, failure=failure)

        logger.debug("Parse header for authentication.")
        self._bus.publish(AuthEvent.AUTHENTICATION_HEADER, pending)
        self._bus.publish(AuthEvent.SIGNIN_REQUIRED, pending)

        return await pending.deferred
