"""Deferred result handles and the pending-request protocol.

A :class:`Deferred` is a single-assignment result that can also emit
repeatable progress notifications before it settles. Its status is always
one of three explicit states:

* :class:`Pending` -- nothing has happened yet.
* :class:`Progress` -- an update was emitted; the handle is still open and
  may emit further updates.
* :class:`Settled` -- terminal; carries either a value or an error.

Handles can be awaited (returning the value or raising the error), observed
one transition at a time with :meth:`Deferred.changed`, or given listeners
with :meth:`Deferred.then`. Listeners run synchronously, in registration
order, at the moment the handle transitions.

:class:`PendingRequest` pairs a request suspended by an authentication
challenge with the deferred that will eventually carry its replayed
response.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar, Union

import httpx

from dgauth.exceptions import AuthError, HandleSettledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Pending:
    """No transition has happened yet."""


@dataclass(frozen=True)
class Progress:
    """A non-terminal update; the handle may still settle later."""

    info: Any = None


@dataclass(frozen=True)
class Settled:
    """Terminal outcome: ``error`` is ``None`` on success."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, or raise the error of a failed outcome."""
        if self.error is not None:
            raise self.error
        return self.value


Status = Union[Pending, Progress, Settled]

SuccessHandler = Callable[[Any], Any]
ErrorHandler = Callable[[BaseException], Any]
ProgressHandler = Callable[[Any], Any]


class Deferred(Generic[T]):
    """A result handle that settles exactly once and may report progress before that.

    Example::

        handle = Deferred()
        handle.then(on_success=print, on_progress=lambda info: print("update", info))
        handle.notify("login required")
        handle.resolve({"id": 1})
        value = await handle
    """

    def __init__(self) -> None:
        self._status: Status = Pending()
        self._listeners: list[tuple[Optional[SuccessHandler], Optional[ErrorHandler], Optional[ProgressHandler]]] = []
        self._waiters: list[asyncio.Future[Status]] = []

    @property
    def status(self) -> Status:
        return self._status

    @property
    def done(self) -> bool:
        """Whether the handle has settled."""
        return isinstance(self._status, Settled)

    # ------------------------------------------------------------------ #
    # Observation
    # ------------------------------------------------------------------ #

    def then(
        self,
        on_success: Optional[SuccessHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_progress: Optional[ProgressHandler] = None,
    ) -> None:
        """Attach listeners for settlement and progress.

        Listeners attached after settlement are invoked immediately with
        the settled outcome. Exceptions raised by a listener are logged and
        do not prevent the remaining listeners from running.
        """
        if isinstance(self._status, Settled):
            self._fire_settled(self._status, on_success, on_error)
            return
        self._listeners.append((on_success, on_error, on_progress))

    async def changed(self) -> Union[Progress, Settled]:
        """Wait for the next transition and return the new status.

        Returns immediately when the handle has already settled.
        """
        if isinstance(self._status, Settled):
            return self._status
        waiter: asyncio.Future[Status] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter  # type: ignore[return-value]

    def __await__(self):
        return self._wait().__await__()

    async def _wait(self) -> T:
        status = self._status
        while not isinstance(status, Settled):
            status = await self.changed()
        return status.unwrap()

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def resolve(self, value: T = None) -> None:  # type: ignore[assignment]
        """Settle successfully with *value*.

        Raises:
            HandleSettledError: If the handle already settled.
        """
        self._settle(Settled(value=value))

    def reject(self, error: BaseException) -> None:
        """Settle with *error*.

        Raises:
            HandleSettledError: If the handle already settled.
        """
        self._settle(Settled(error=error))

    def notify(self, info: Any = None) -> None:
        """Emit a progress update without settling.

        Raises:
            HandleSettledError: If the handle already settled.
        """
        if isinstance(self._status, Settled):
            raise HandleSettledError("Cannot notify a handle that has already settled")
        status = Progress(info)
        self._status = status
        for _, _, on_progress in list(self._listeners):
            if on_progress is not None:
                self._call(on_progress, info)
        self._wake(status)

    def _settle(self, outcome: Settled) -> None:
        if isinstance(self._status, Settled):
            raise HandleSettledError("Handle has already settled")
        self._status = outcome
        listeners, self._listeners = self._listeners, []
        for on_success, on_error, _ in listeners:
            self._fire_settled(outcome, on_success, on_error)
        self._wake(outcome)

    def _fire_settled(
        self,
        outcome: Settled,
        on_success: Optional[SuccessHandler],
        on_error: Optional[ErrorHandler],
    ) -> None:
        if outcome.ok:
            if on_success is not None:
                self._call(on_success, outcome.value)
        elif on_error is not None:
            self._call(on_error, outcome.error)

    def _wake(self, status: Status) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(status)

    @staticmethod
    def _call(handler: Callable[[Any], Any], arg: Any) -> None:
        try:
            handler(arg)
        except Exception:
            logger.exception("Deferred listener %r raised", handler)


@dataclass(eq=False)
class PendingRequest:
    """A request suspended by an authentication challenge.

    Attributes:
        request: The original request as it was sent.
        failure: The 401 failure that suspended it. A terminal sign-in
            failure rejects :attr:`deferred` with this exact error.
        deferred: Settles with the replayed :class:`httpx.Response`.
    """

    request: httpx.Request
    failure: AuthError
    deferred: Deferred[httpx.Response] = field(default_factory=Deferred)

    def replay_request(self) -> httpx.Request:
        """Build a fresh copy of :attr:`request` suitable for re-sending.

        The ``Authorization`` and ``Cookie`` headers are dropped so that the
        replay is stamped with the credentials and cookies of the new
        session rather than those that were just rejected.
        """
        headers = httpx.Headers(self.request.headers)
        headers.pop("Authorization", None)
        headers.pop("Cookie", None)
        return httpx.Request(
            self.request.method,
            self.request.url,
            headers=headers,
            content=self.request.content,
            extensions=dict(self.request.extensions),
        )
