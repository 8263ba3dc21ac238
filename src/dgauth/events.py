"""Typed publish/subscribe bus decoupling the interceptor, the orchestrator and the UI.

The :class:`AuthEvent` enum is the event-name registry: each member's value
is the logical wire name subscribers may also use as a plain string.
:class:`EventBus` delivers a published payload synchronously to every
handler subscribed to that event, in subscription order. Publishing is
synchronous so that the relative order of related notifications is kept:
``authentication.header`` is fully handled (the pending request is bound to
the login attempt) before any ``signin.required`` subscriber runs.
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class AuthEvent(str, enum.Enum):
    """Logical event names published during the authentication lifecycle."""

    PROCESS_REQUEST = "process.request"
    PROCESS_RESPONSE = "process.response"
    CREDENTIAL_SUBMITTED = "credential.submitted"
    CREDENTIAL_RESTORED = "credential.restored"
    CREDENTIAL_STORED = "credential.stored"
    AUTHENTICATION_HEADER = "authentication.header"
    AUTHENTICATION_NOT_FOUND = "authentication.notFound"
    SIGNIN_REQUIRED = "signin.required"
    LOGIN_REQUIRED = "login.required"
    LOGIN_SUCCESSFUL = "login.successful"
    LOGIN_ERROR = "login.error"
    LOGOUT_SUCCESSFUL = "logout.successful"
    LOGOUT_ERROR = "logout.error"


class EventBus:
    """Process-wide broadcast channel keyed by :class:`AuthEvent`.

    Handlers receive the published payload as their single argument.
    Exceptions raised by a handler propagate to the publisher.

    Example::

        bus = EventBus()
        unsubscribe = bus.subscribe(AuthEvent.SIGNIN_REQUIRED, on_signin)
        bus.publish(AuthEvent.SIGNIN_REQUIRED, pending)
        unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: dict[AuthEvent, list[Handler]] = defaultdict(list)

    def subscribe(self, event: Union[AuthEvent, str], handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event* and return a function that removes it.

        Args:
            event: An :class:`AuthEvent` or its logical name
                (e.g. ``"login.successful"``).
            handler: Callable invoked with the event payload.

        Raises:
            ValueError: If *event* is not a known event name.
        """
        key = AuthEvent(event)
        self._handlers[key].append(handler)
        return lambda: self.unsubscribe(key, handler)

    def unsubscribe(self, event: Union[AuthEvent, str], handler: Handler) -> None:
        """Remove *handler* from *event*; a no-op if it is not subscribed."""
        handlers = self._handlers.get(AuthEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: AuthEvent, payload: Any = None) -> None:
        """Deliver *payload* to every handler of *event*, in subscription order."""
        handlers = list(self._handlers.get(event, ()))
        logger.debug("Publishing %s to %d handler(s)", event.value, len(handlers))
        for handler in handlers:
            handler(payload)

    def handler_count(self, event: Union[AuthEvent, str]) -> int:
        return len(self._handlers.get(AuthEvent(event), ()))
