"""dgauth -- HTTP authentication orchestration for asynchronous API clients.

This package sits between an application and its HTTP transport. Outgoing
requests are stamped with the credentials of the active session; when the
server answers ``401`` with an authentication challenge, the failing request
is suspended, a sign-in exchange is performed once credentials are available,
and the request is transparently replayed.

Typical workflow::

    async with AuthSession(profile) as session:
        session.bus.subscribe(AuthEvent.SIGNIN_REQUIRED, prompt_user)
        response = await session.client.get("/orders")

Modules:
    session: Assembles the components below for one profile.
    interceptor: Request/response interception and request suspension.
    auth.service: The sign-in / sign-out state machine.
    events: Typed publish/subscribe bus.
    deferred: Three-state result handles and pending requests.
    models: Pydantic configuration models.
    config: XDG-aware profile storage.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.3.0"
