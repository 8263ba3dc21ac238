"""Tests for the request interceptor."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from dgauth.deferred import PendingRequest
from dgauth.events import AuthEvent, EventBus
from dgauth.exceptions import AuthError, NotFoundError, ServerError
from dgauth.interceptor import RequestInterceptor


class FakeChallenges:
    def __init__(self, recognised: bool = True) -> None:
        self.recognised = recognised
        self.parsed: list[httpx.Response | None] = []

    def parse_header(self, response: httpx.Response | None) -> bool:
        self.parsed.append(response)
        return self.recognised


def _failure(status: int = 401, exc_type: type = AuthError, path: str = "/orders") -> Any:
    request = httpx.Request("GET", f"https://api.example.com{path}")
    response = httpx.Response(
        status,
        headers={"WWW-Authenticate": 'Basic realm="api"'},
        request=request,
    )
    return exc_type(f"HTTP {status}", request=request, response=response)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


class TestProcessRequest:
    def test_publishes_and_returns_request(self, bus: EventBus) -> None:
        seen: list[httpx.Request] = []
        bus.subscribe(AuthEvent.PROCESS_REQUEST, seen.append)
        interceptor = RequestInterceptor(bus, FakeChallenges())

        request = httpx.Request("GET", "https://api.example.com/orders")
        assert interceptor.process_request(request) is request
        assert seen == [request]


class TestProcessFailure:
    @pytest.mark.parametrize(
        "failure",
        [
            _failure(403),
            _failure(404, NotFoundError),
            _failure(500, ServerError),
        ],
    )
    @pytest.mark.asyncio
    async def test_other_failures_reraised_untouched(
        self, bus: EventBus, recorder: Any, failure: Any
    ) -> None:
        events = recorder(bus)
        challenges = FakeChallenges()
        interceptor = RequestInterceptor(bus, challenges)

        with pytest.raises(type(failure)) as excinfo:
            await interceptor.process_failure(failure)

        assert excinfo.value is failure
        assert events == []
        assert challenges.parsed == []

    @pytest.mark.asyncio
    async def test_terminal_failure_reraised(self, bus: EventBus, recorder: Any) -> None:
        bus.subscribe(AuthEvent.PROCESS_RESPONSE, lambda f: setattr(f, "must_terminate", True))
        events = recorder(bus)
        challenges = FakeChallenges()
        interceptor = RequestInterceptor(bus, challenges)
        failure = _failure(path="/signin")

        with pytest.raises(AuthError) as excinfo:
            await interceptor.process_failure(failure)

        assert excinfo.value is failure
        assert [name for name, _ in events] == ["process.response"]
        assert challenges.parsed == [failure.response]

    @pytest.mark.asyncio
    async def test_unrecognised_challenge(self, bus: EventBus, recorder: Any) -> None:
        events = recorder(bus)
        interceptor = RequestInterceptor(bus, FakeChallenges(recognised=False))
        failure = _failure()

        with pytest.raises(AuthError) as excinfo:
            await interceptor.process_failure(failure)

        assert excinfo.value is failure
        assert events == [
            ("process.response", failure),
            ("authentication.notFound", failure),
        ]

    @pytest.mark.asyncio
    async def test_header_published_before_signin_required(
        self, bus: EventBus, recorder: Any
    ) -> None:
        events = recorder(bus)
        replayed = httpx.Response(200, json={"replayed": True})
        bus.subscribe(AuthEvent.SIGNIN_REQUIRED, lambda pending: pending.deferred.resolve(replayed))
        interceptor = RequestInterceptor(bus, FakeChallenges())
        failure = _failure()

        response = await interceptor.process_failure(failure)

        assert response is replayed
        names = [name for name, _ in events]
        assert names == ["process.response", "authentication.header", "signin.required"]
        pending = events[1][1]
        assert isinstance(pending, PendingRequest)
        assert events[2][1] is pending
        assert pending.request is failure.request
        assert pending.failure is failure

    @pytest.mark.asyncio
    async def test_rejected_pending_request_raises(self, bus: EventBus) -> None:
        bus.subscribe(
            AuthEvent.SIGNIN_REQUIRED,
            lambda pending: pending.deferred.reject(pending.failure),
        )
        interceptor = RequestInterceptor(bus, FakeChallenges())
        failure = _failure()

        with pytest.raises(AuthError) as excinfo:
            await interceptor.process_failure(failure)
        assert excinfo.value is failure
