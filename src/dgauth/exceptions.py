"""Exception hierarchy for dgauth.

All exceptions inherit from :class:`DgAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`dgauth.exit_codes`.
The CLI entry point in :func:`dgauth.app.main` catches ``DgAuthError`` and
exits with the appropriate code.

Transport failures are :class:`RequestError` subclasses and keep a reference
to the request and (when one was received) the response, so that the
interceptor can inspect a ``401`` and the orchestrator can extract the
failure payload.

Subclass hierarchy::

    DgAuthError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 1)
    +-- RequestError            (exit 1)
    |   +-- AuthError           (exit 3)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError         (exit 5)
    |   +-- ConnectionError_    (exit 6)
    +-- LoginError              (exit 3)
    +-- LogoutError             (exit 3)
    +-- HandleSettledError      (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from dgauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class DgAuthError(Exception):
    """Base exception for all dgauth errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DgAuthError):
    """Raised for invalid CLI arguments or API misuse."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(DgAuthError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad callback references)."""

    exit_code = EXIT_GENERIC_FAILURE


class RequestError(DgAuthError):
    """A request failed at the transport or HTTP level.

    Args:
        message: Human-readable description.
        request: The request that failed.
        response: The error response, or ``None`` for network-level failures.
    """

    def __init__(
        self,
        message: str,
        request: Optional[httpx.Request] = None,
        response: Optional[httpx.Response] = None,
    ):
        super().__init__(message)
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int:
        """HTTP status of the error response, ``0`` when none was received."""
        return self.response.status_code if self.response is not None else 0


class AuthError(RequestError):
    """Raised when the server answers 401 or 403.

    ``must_terminate`` is set by subscribers of the ``process.response``
    event when this failure must not start another authentication cycle
    (e.g. a 401 returned by the sign-in endpoint itself).
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        request: Optional[httpx.Request] = None,
        response: Optional[httpx.Response] = None,
    ):
        super().__init__(message, request, response)
        self.must_terminate = False


class NotFoundError(RequestError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(RequestError):
    """Raised for every other HTTP error status (5xx and unmapped 4xx)."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(RequestError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class LoginError(DgAuthError):
    """Raised when a sign-in exchange fails and the attempt must terminate.

    Args:
        message: Human-readable description.
        payload: The decoded body of the failed sign-in response, if any.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class LogoutError(DgAuthError):
    """Raised when a sign-out exchange fails. Sign-out is never retried."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class HandleSettledError(DgAuthError):
    """Raised when a deferred handle that already settled is settled again."""
