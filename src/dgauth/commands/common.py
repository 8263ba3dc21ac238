"""Helpers shared by the CLI commands."""

from __future__ import annotations

import json
from typing import Any, NoReturn, Optional

import typer

from dgauth.deferred import PendingRequest
from dgauth.events import AuthEvent
from dgauth.exceptions import DgAuthError, InvalidUsageError
from dgauth.models import Profile
from dgauth.output import error, suggest
from dgauth.session import AuthSession


def active_profile(ctx: typer.Context) -> Profile:
    """Resolve the profile selected by ``--profile``, the environment or the config.

    Raises:
        typer.Exit: With code 2 when no profile can be resolved.
    """
    from dgauth.config import resolve_config

    obj = ctx.obj or {}
    try:
        _, profile = resolve_config(obj.get("profile"), obj.get("base_url"))
    except DgAuthError as exc:
        fail(exc)
    if profile is None:
        error("No profile selected.")
        suggest("Create one: dgauth init --name myapi --base-url https://api.example.com")
        raise typer.Exit(code=InvalidUsageError.exit_code)
    return profile


def fail(exc: DgAuthError) -> NoReturn:
    """Report *exc* and exit with its exit code."""
    error(str(exc))
    raise typer.Exit(code=exc.exit_code) from None


def answer_signin(session: AuthSession, username: Optional[str], password: Optional[str]) -> None:
    """Answer ``signin.required`` without prompting.

    Submits *username* and *password* when given, otherwise lets the sign-in
    restore stored credentials. When the sign-in asks for credentials again,
    the suspended request is rejected with its original failure.
    """
    service = session.service

    def on_signin_required(pending: PendingRequest) -> None:
        if username:
            service.submit_credentials(username, password or "")

        def give_up(_: Any) -> None:
            if not pending.deferred.done:
                pending.deferred.reject(pending.failure)

        service.sign_in().then(on_progress=give_up)

    session.bus.subscribe(AuthEvent.SIGNIN_REQUIRED, on_signin_required)


def parse_headers(values: list[str]) -> dict[str, str]:
    """Parse ``Name: value`` strings.

    Raises:
        typer.Exit: With code 2 on a malformed header.
    """
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            error(f"Invalid header (expected 'Name: value'): {raw}")
            raise typer.Exit(code=InvalidUsageError.exit_code)
        headers[name.strip()] = value.strip()
    return headers


def parse_body(body: Optional[str]) -> tuple[Any, Optional[str]]:
    """Split *body* into ``(json_body, raw_body)``; JSON wins when it parses."""
    if body is None:
        return None, None
    try:
        return json.loads(body), None
    except (json.JSONDecodeError, TypeError):
        return None, body
