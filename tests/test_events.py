"""Tests for the event bus."""

from __future__ import annotations

import pytest

from dgauth.events import AuthEvent, EventBus


class TestAuthEvent:
    def test_wire_names(self) -> None:
        assert AuthEvent.SIGNIN_REQUIRED.value == "signin.required"
        assert AuthEvent.AUTHENTICATION_NOT_FOUND.value == "authentication.notFound"
        assert AuthEvent("login.successful") is AuthEvent.LOGIN_SUCCESSFUL

    def test_registry_is_complete(self) -> None:
        assert len(AuthEvent) == 13


class TestEventBus:
    def test_publish_delivers_payload(self) -> None:
        bus = EventBus()
        received: list[object] = []
        bus.subscribe(AuthEvent.LOGIN_SUCCESSFUL, received.append)
        bus.publish(AuthEvent.LOGIN_SUCCESSFUL, {"id": 1})
        assert received == [{"id": 1}]

    def test_handlers_run_in_subscription_order(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe(AuthEvent.SIGNIN_REQUIRED, lambda _: calls.append("first"))
        bus.subscribe(AuthEvent.SIGNIN_REQUIRED, lambda _: calls.append("second"))
        bus.publish(AuthEvent.SIGNIN_REQUIRED)
        assert calls == ["first", "second"]

    def test_nested_publish_is_handled_before_returning(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def on_header(_: object) -> None:
            calls.append("header")
            bus.publish(AuthEvent.CREDENTIAL_SUBMITTED)

        bus.subscribe(AuthEvent.AUTHENTICATION_HEADER, on_header)
        bus.subscribe(AuthEvent.CREDENTIAL_SUBMITTED, lambda _: calls.append("submitted"))
        bus.subscribe(AuthEvent.SIGNIN_REQUIRED, lambda _: calls.append("required"))

        bus.publish(AuthEvent.AUTHENTICATION_HEADER)
        bus.publish(AuthEvent.SIGNIN_REQUIRED)
        assert calls == ["header", "submitted", "required"]

    def test_subscribe_by_wire_name(self) -> None:
        bus = EventBus()
        received: list[object] = []
        bus.subscribe("logout.error", received.append)
        bus.publish(AuthEvent.LOGOUT_ERROR, "boom")
        assert received == ["boom"]

    def test_unknown_event_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            EventBus().subscribe("no.such.event", print)

    def test_unsubscribe_callable(self) -> None:
        bus = EventBus()
        received: list[object] = []
        unsubscribe = bus.subscribe(AuthEvent.LOGIN_ERROR, received.append)
        unsubscribe()
        bus.publish(AuthEvent.LOGIN_ERROR, "x")
        assert received == []
        assert bus.handler_count(AuthEvent.LOGIN_ERROR) == 0

    def test_unsubscribe_unknown_handler_is_noop(self) -> None:
        bus = EventBus()
        bus.unsubscribe(AuthEvent.LOGIN_ERROR, print)

    def test_handler_exception_propagates(self) -> None:
        bus = EventBus()

        def boom(_: object) -> None:
            raise RuntimeError("handler failed")

        bus.subscribe(AuthEvent.PROCESS_REQUEST, boom)
        with pytest.raises(RuntimeError, match="handler failed"):
            bus.publish(AuthEvent.PROCESS_REQUEST)

    def test_publish_without_handlers(self) -> None:
        EventBus().publish(AuthEvent.LOGOUT_SUCCESSFUL)
