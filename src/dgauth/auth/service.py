"""The sign-in / sign-out state machine.

:class:`AuthService` owns the current login and logout attempts. It decides
whether a failed sign-in is terminal or asks for credentials again,
performs the sign-in and sign-out exchanges, and resumes the requests that
were suspended while authentication was pending.

Sign-in lifecycle::

    Idle --submit_credentials()--> AwaitingCredentials --sign_in()--> Authenticating
    Authenticating --success--> Authenticated   (handle resolved, requests replayed)
    Authenticating --failure--> Idle            (non-terminal: "login.required" progress)
    Authenticating --failure--> Rejected        (terminal: handle and requests rejected)

Whatever the outcome, a fresh attempt replaces the settled one. The swap
happens before subscribers and handle listeners are told, so a subscriber
that reacts by calling :meth:`AuthService.sign_in` again starts a new
attempt instead of receiving the one that just finished.

All state lives on the event loop thread; :meth:`AuthService.sign_in` and
:meth:`AuthService.sign_out` must be called while a loop is running.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

import httpx

from dgauth.auth.callbacks import CallbackFactory, CallbackResolver
from dgauth.auth.credential_store import CredentialStorage
from dgauth.auth.session_flag import AuthFlag
from dgauth.client.response import extract_response_data
from dgauth.deferred import Deferred, PendingRequest, Settled
from dgauth.events import AuthEvent, EventBus
from dgauth.exceptions import AuthError, LoginError, LogoutError, RequestError
from dgauth.identity import AuthIdentity
from dgauth.models import AuthSettings, ExchangeConfig

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the orchestrator needs from the HTTP layer."""

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request: ...

    async def send(self, request: httpx.Request, retry: bool = True) -> httpx.Response: ...


@dataclass(eq=False)
class LoginAttempt:
    """One sign-in cycle.

    ``must_terminate`` turns a failure into a final rejection instead of
    another ``login.required`` notification.
    """

    username: str = ""
    password: str = ""
    pending_requests: list[PendingRequest] = field(default_factory=list)
    deferred: Optional[Deferred[Any]] = None
    must_terminate: bool = False
    task: Optional[asyncio.Task[None]] = None


@dataclass(eq=False)
class LogoutAttempt:
    deferred: Optional[Deferred[Any]] = None
    must_terminate: bool = True
    task: Optional[asyncio.Task[None]] = None


def _in_flight(deferred: Optional[Deferred[Any]]) -> bool:
    return deferred is not None and not deferred.done


class AuthService:
    """Performs sign-in and sign-out, manages the identity and checks authentication.

    Args:
        settings: The profile's authentication settings.
        transport: Issues the sign-in, sign-out and replayed requests.
        bus: Event bus used for every lifecycle notification.
        storage: Remembered credentials.
        session_flag: Persisted "authenticated" marker.
        identity: Holder for the signed-in user's record.
        login_callbacks: Factories attached to each new sign-in handle, run
            after the ones named in ``settings.callbacks.login``.
        logout_callbacks: Factories attached to each new sign-out handle.
        resolver: Dependency lookup used to invoke callback factories.
    """

    def __init__(
        self,
        settings: AuthSettings,
        transport: Transport,
        bus: EventBus,
        storage: CredentialStorage,
        session_flag: AuthFlag,
        identity: Optional[AuthIdentity] = None,
        login_callbacks: Sequence[CallbackFactory] = (),
        logout_callbacks: Sequence[CallbackFactory] = (),
        resolver: Optional[CallbackResolver] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._bus = bus
        self._storage = storage
        self._flag = session_flag
        self._identity = identity if identity is not None else AuthIdentity()
        self._login_callbacks: list[CallbackFactory] = [
            *settings.callbacks.login,
            *login_callbacks,
        ]
        self._logout_callbacks: list[CallbackFactory] = [
            *settings.callbacks.logout,
            *logout_callbacks,
        ]
        self._resolver = resolver if resolver is not None else CallbackResolver()
        self._resolver.provide("auth_service", self)

        self._login = LoginAttempt()
        self._logout = LogoutAttempt()
        self._session_credentials: tuple[str, str] = ("", "")
        if session_flag.is_set() and storage.has_credential():
            # Resume the persisted session.
            self._session_credentials = (storage.get_username(), storage.get_password())
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def settings(self) -> AuthSettings:
        return self._settings

    # ------------------------------------------------------------------ #
    # Identity and credentials
    # ------------------------------------------------------------------ #

    def has_identity(self) -> bool:
        return self._identity.has()

    def get_identity(self) -> Any:
        return self._identity.get()

    def submit_credentials(self, username: str, password: str) -> None:
        """Set the credentials used by the next sign-in.

        A manual submission is a terminal decision point: if the following
        sign-in fails, it is rejected outright rather than asking again.
        """
        attempt = self._login
        attempt.username = username
        attempt.password = password
        attempt.must_terminate = True
        self._bus.publish(
            AuthEvent.CREDENTIAL_SUBMITTED,
            {"username": username, "password": password},
        )

    def get_credentials(self) -> dict[str, str]:
        """Return the credentials to stamp requests with.

        These are the current attempt's credentials, or those of the signed-in
        session when the attempt has none yet.
        """
        if self._login.username:
            return {"username": self._login.username, "password": self._login.password}
        username, password = self._session_credentials
        return {"username": username, "password": password}

    # ------------------------------------------------------------------ #
    # Interceptor hooks
    # ------------------------------------------------------------------ #

    def bind_pending_request(self, pending: PendingRequest) -> None:
        """Attach a suspended request to the current attempt for later replay."""
        self._login.pending_requests.append(pending)

    def mark_terminal(self, failure: AuthError) -> None:
        """Flag 401s of the sign-in and sign-out exchanges as terminal.

        Such failures are handled by the state machine itself and must never
        start another authentication cycle.
        """
        request = failure.request
        if request is None:
            return
        for exchange in (self._settings.login, self._settings.logout):
            if self._matches(request, exchange):
                failure.must_terminate = True
                return

    def _matches(self, request: httpx.Request, exchange: ExchangeConfig) -> bool:
        if request.method != exchange.method:
            return False
        target = self._transport.build_request(exchange.method, exchange.url).url
        return (request.url.host, request.url.port, request.url.path) == (
            target.host,
            target.port,
            target.path,
        )

    # ------------------------------------------------------------------ #
    # Sign in
    # ------------------------------------------------------------------ #

    def sign_in(self) -> Deferred[Any]:
        """Start a sign-in, or join the one already in flight.

        Returns:
            The attempt's handle. It resolves with the identity, reports a
            :class:`~dgauth.deferred.Progress` when credentials are required
            again, or rejects with :class:`~dgauth.exceptions.LoginError`.
        """
        attempt = self._login
        if attempt.deferred is not None:
            return attempt.deferred

        # Raises ConfigError before the slot is taken.
        listeners = [self._resolver.invoke(factory) for factory in self._login_callbacks]

        if self._flag.is_set() or self._settings.automatic:
            if self._storage.has_credential():
                attempt.username = self._storage.get_username()
                attempt.password = self._storage.get_password()
                attempt.must_terminate = True
                self._bus.publish(
                    AuthEvent.CREDENTIAL_RESTORED,
                    {"username": attempt.username, "password": attempt.password},
                )

        deferred: Deferred[Any] = Deferred()
        attempt.deferred = deferred
        for callbacks in listeners:
            deferred.then(callbacks.successful, callbacks.error, callbacks.required)

        attempt.task = self._spawn(self._perform_login(attempt))
        return deferred

    async def _perform_login(self, attempt: LoginAttempt) -> None:
        logger.debug("Performs a login.")
        exchange = self._settings.login
        try:
            response = await self._exchange(exchange)
        except RequestError as failure:
            self._login_failed(attempt, failure)
            return
        except Exception as exc:
            logger.warning("Login exchange raised %s: %s", type(exc).__name__, exc)
            attempt.must_terminate = True
            self._login_failed(attempt, exc)
            return
        self._login_succeeded(attempt, response)

    def _login_succeeded(self, attempt: LoginAttempt, response: httpx.Response) -> None:
        logger.debug("Login successful.")
        deferred = attempt.deferred
        assert deferred is not None

        data = extract_response_data(response)
        self._identity.set(_as_identity(data))
        self._flag.set(True)
        self._session_credentials = (attempt.username, attempt.password)

        self._replace_login(attempt, LoginAttempt())

        if self._settings.remember_credentials:
            self._storage.set_credentials(attempt.username, attempt.password)
            self._bus.publish(
                AuthEvent.CREDENTIAL_STORED,
                {"username": attempt.username, "password": attempt.password},
            )
        self._bus.publish(AuthEvent.LOGIN_SUCCESSFUL, response)

        attempt.must_terminate = False
        deferred.resolve(self._identity.get())

        for pending in attempt.pending_requests:
            self._resume(pending)

    def _login_failed(self, attempt: LoginAttempt, failure: Exception) -> None:
        deferred = attempt.deferred
        assert deferred is not None

        fresh = LoginAttempt()
        if not attempt.must_terminate:
            logger.info("Login requested.")
            # Suspended requests keep waiting for the next attempt.
            fresh.pending_requests = attempt.pending_requests
            self._replace_login(attempt, fresh)
            self._bus.publish(AuthEvent.LOGIN_REQUIRED, failure)
            deferred.notify(failure)
            return

        logger.debug("Login error.")
        self._replace_login(attempt, fresh)
        self._bus.publish(AuthEvent.LOGIN_ERROR, failure)
        payload = _payload(failure)
        error = LoginError(f"Sign-in failed: {failure}", payload=payload)
        error.__cause__ = failure
        deferred.reject(error)
        for pending in attempt.pending_requests:
            if not pending.deferred.done:
                pending.deferred.reject(pending.failure)

    def _replace_login(self, settled: LoginAttempt, fresh: LoginAttempt) -> None:
        # A sign-out may already have discarded the settled attempt.
        if self._login is settled:
            self._login = fresh

    def _resume(self, pending: PendingRequest) -> None:
        self._spawn(self._replay(pending))

    async def _replay(self, pending: PendingRequest) -> None:
        if pending.deferred.done:
            return
        logger.debug("Replaying %s %s", pending.request.method, pending.request.url)
        try:
            response = await self._transport.send(pending.replay_request())
        except Exception as exc:
            if not pending.deferred.done:
                pending.deferred.reject(exc)
            return
        if not pending.deferred.done:
            pending.deferred.resolve(response)

    # ------------------------------------------------------------------ #
    # Sign out
    # ------------------------------------------------------------------ #

    def sign_out(self) -> Deferred[Any]:
        """Start a sign-out, or join the one already in flight.

        The exchange is issued even when no session exists. Failures are
        final and never retried.
        """
        attempt = self._logout
        if attempt.deferred is not None:
            return attempt.deferred

        listeners = [self._resolver.invoke(factory) for factory in self._logout_callbacks]

        deferred: Deferred[Any] = Deferred()
        attempt.deferred = deferred
        for callbacks in listeners:
            deferred.then(callbacks.successful, callbacks.error)

        attempt.task = self._spawn(self._perform_logout(attempt))
        return deferred

    async def _perform_logout(self, attempt: LogoutAttempt) -> None:
        logger.debug("Performs a logout.")
        deferred = attempt.deferred
        assert deferred is not None
        try:
            response = await self._exchange(self._settings.logout)
        except Exception as failure:
            logger.debug("Logout error: %s", failure)
            self._logout = LogoutAttempt()
            self._bus.publish(AuthEvent.LOGOUT_ERROR, failure)
            error = LogoutError(f"Sign-out failed: {failure}", payload=_payload(failure))
            error.__cause__ = failure
            deferred.reject(error)
            return

        logger.debug("Logout successful.")
        self._flag.set(False)
        self._identity.clear()
        self._session_credentials = ("", "")
        discarded, self._login = self._login, LoginAttempt()
        self._logout = LogoutAttempt()

        self._bus.publish(AuthEvent.LOGOUT_SUCCESSFUL, response)
        deferred.resolve(extract_response_data(response))

        for pending in discarded.pending_requests:
            if not pending.deferred.done:
                pending.deferred.reject(pending.failure)

    # ------------------------------------------------------------------ #
    # Authentication check
    # ------------------------------------------------------------------ #

    async def is_authenticated(self) -> bool:
        """Report whether a session is established.

        Waits for an in-flight sign-out (re-raising its failure) or the next
        transition of an in-flight sign-in (re-raising a terminal failure)
        before reading the flag and identity. With nothing in flight the
        answer is immediate.

        Raises:
            LogoutError: If the awaited sign-out failed.
            LoginError: If the awaited sign-in failed terminally.
        """
        logout = self._logout.deferred
        if _in_flight(logout):
            assert logout is not None
            await logout
        else:
            login = self._login.deferred
            if _in_flight(login):
                assert login is not None
                status = await login.changed()
                if isinstance(status, Settled):
                    status.unwrap()
        return self._snapshot()

    def _snapshot(self) -> bool:
        return self._flag.is_set() and self._identity.has()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _spawn(self, coro: Any) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _exchange(self, exchange: ExchangeConfig) -> httpx.Response:
        """Send a sign-in or sign-out exchange.

        An exchange sent without credentials that is answered with a
        challenge is sent once more, now stamped by the freshly configured
        auth client, when credentials are available.
        """
        try:
            return await self._transport.send(self._build_exchange(exchange), retry=False)
        except AuthError as failure:
            if not self._answerable(failure):
                raise
        logger.debug("Answering the challenge of %s %s.", exchange.method, exchange.url)
        return await self._transport.send(self._build_exchange(exchange), retry=False)

    def _answerable(self, failure: AuthError) -> bool:
        if failure.status_code != 401 or failure.request is None or failure.response is None:
            return False
        if "authorization" in failure.request.headers:
            return False
        if not failure.response.headers.get(self._settings.challenge_header):
            return False
        return bool(self.get_credentials()["username"])

    def _build_exchange(self, exchange: ExchangeConfig) -> httpx.Request:
        kwargs: dict[str, Any] = {}
        if exchange.headers:
            kwargs["headers"] = dict(exchange.headers)
        if exchange.json_body is not None:
            kwargs["json"] = exchange.json_body
        return self._transport.build_request(exchange.method, exchange.url, **kwargs)


def _as_identity(data: Any) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    if data is None:
        return {}
    return {"data": data}


def _payload(failure: Exception) -> Any:
    if not isinstance(failure, RequestError) or failure.response is None:
        return None
    return extract_response_data(failure.response)
