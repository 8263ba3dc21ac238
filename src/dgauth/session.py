"""Assembly of the authentication components for one profile.

:class:`AuthSession` builds the event bus, the auth manager, the
interceptor, the transport and the orchestrator, and registers the
subscriptions that tie them together:

* ``process.request`` -- stamp the request with the current credentials when
  an auth client is configured;
* ``process.response`` -- let the orchestrator flag 401s of its own
  exchanges as terminal;
* ``authentication.header`` -- bind the suspended request to the current
  sign-in attempt.

Answering ``signin.required`` (collecting credentials, then calling
:meth:`~dgauth.auth.service.AuthService.submit_credentials` and
:meth:`~dgauth.auth.service.AuthService.sign_in`) is left to the
application.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

from dgauth.auth.callbacks import CallbackFactory, CallbackResolver
from dgauth.auth.credential_store import CredentialStorage, CredentialStore
from dgauth.auth.manager import AuthManager, create_default_manager
from dgauth.auth.service import AuthService
from dgauth.auth.session_flag import AuthFlag, SessionFlag
from dgauth.client.async_client import AsyncClient
from dgauth.deferred import PendingRequest
from dgauth.events import AuthEvent, EventBus
from dgauth.exceptions import AuthError
from dgauth.identity import AuthIdentity
from dgauth.interceptor import RequestInterceptor
from dgauth.models import Profile


class AuthSession:
    """An authenticated client session for a :class:`~dgauth.models.Profile`.

    Storage defaults to the profile-scoped :class:`CredentialStore` and
    :class:`SessionFlag`; pass in-memory implementations to keep nothing on
    disk.

    Args:
        profile: The API target and its authentication settings.
        storage: Remembered credentials.
        session_flag: Persisted "authenticated" marker.
        identity: Identity holder shared with the application.
        auth_manager: Challenge parser and stamping clients.
        bus: Event bus; a new one is created when omitted.
        login_callbacks: Extra sign-in callback factories.
        logout_callbacks: Extra sign-out callback factories.
        transport: Optional :class:`httpx.AsyncBaseTransport` for the
            underlying HTTP client.

    Example::

        async with AuthSession(profile) as session:
            session.bus.subscribe(AuthEvent.SIGNIN_REQUIRED, on_signin_required)
            response = await session.client.get("/orders")
    """

    def __init__(
        self,
        profile: Profile,
        *,
        storage: Optional[CredentialStorage] = None,
        session_flag: Optional[AuthFlag] = None,
        identity: Optional[AuthIdentity] = None,
        auth_manager: Optional[AuthManager] = None,
        bus: Optional[EventBus] = None,
        login_callbacks: Sequence[CallbackFactory] = (),
        logout_callbacks: Sequence[CallbackFactory] = (),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = profile.auth
        self.profile = profile
        self.bus = bus if bus is not None else EventBus()
        self.identity = identity if identity is not None else AuthIdentity()
        self.storage = storage if storage is not None else CredentialStore(profile.name)
        self.session_flag = session_flag if session_flag is not None else SessionFlag(profile.name)
        self.auth_manager = auth_manager if auth_manager is not None else create_default_manager(
            settings.schemes, settings.challenge_header
        )
        self.interceptor = RequestInterceptor(self.bus, self.auth_manager)
        self.client = AsyncClient(profile, interceptor=self.interceptor, transport=transport)

        resolver = CallbackResolver(
            {
                "identity": self.identity,
                "events": self.bus,
                "storage": self.storage,
                "session_flag": self.session_flag,
                "settings": settings,
            }
        )
        self.service = AuthService(
            settings,
            self.client,
            self.bus,
            self.storage,
            self.session_flag,
            identity=self.identity,
            login_callbacks=login_callbacks,
            logout_callbacks=logout_callbacks,
            resolver=resolver,
        )

        self.bus.subscribe(AuthEvent.PROCESS_REQUEST, self._stamp)
        self.bus.subscribe(AuthEvent.PROCESS_RESPONSE, self._check_terminal)
        self.bus.subscribe(AuthEvent.AUTHENTICATION_HEADER, self._bind)
        self.bus.subscribe(AuthEvent.LOGOUT_SUCCESSFUL, self._forget_challenge)

    async def __aenter__(self) -> AuthSession:
        await self.client.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.client.__aexit__(*args)

    def _stamp(self, request: httpx.Request) -> None:
        if self.auth_manager.is_configured():
            login = self.service.get_credentials()
            self.auth_manager.process_request(login["username"], login["password"], request)

    def _check_terminal(self, failure: AuthError) -> None:
        self.service.mark_terminal(failure)

    def _bind(self, pending: PendingRequest) -> None:
        self.service.bind_pending_request(pending)

    def _forget_challenge(self, _: Any) -> None:
        self.auth_manager.reset()
