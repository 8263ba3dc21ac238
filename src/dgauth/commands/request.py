"""Request command -- call the API through the authentication pipeline.

``dgauth request GET /orders`` sends the request through an
:class:`~dgauth.session.AuthSession`. When the server challenges it, the
command signs in with ``--username``/``--password`` (or the
``DGAUTH_USERNAME``/``DGAUTH_PASSWORD`` environment variables, or the stored
credentials of a remembered session) and prints the replayed response.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx
import typer

from dgauth.commands.common import active_profile, answer_signin, fail, parse_body, parse_headers
from dgauth.exceptions import DgAuthError
from dgauth.models import Profile
from dgauth.session import AuthSession


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method."),
    path: str = typer.Argument(help="Path relative to the profile base URL."),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; sent as JSON when it parses as JSON."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header as 'Name: value' (repeatable)."
    ),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", envvar="DGAUTH_USERNAME", help="Username for a sign-in."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="DGAUTH_PASSWORD", help="Password for a sign-in."
    ),
) -> None:
    """Send an authenticated request and print the response.

    Example::

        dgauth request GET /orders
        dgauth request POST /orders -d '{"sku": "A-1"}' -u alice
    """
    from dgauth.client.response import format_api_response

    profile = active_profile(ctx)
    headers = parse_headers(header or [])
    json_body, body = parse_body(data)

    try:
        response = asyncio.run(
            _send(profile, method, path, headers, json_body, body, username, password)
        )
    except DgAuthError as exc:
        fail(exc)
    format_api_response(response)


async def _send(
    profile: Profile,
    method: str,
    path: str,
    headers: dict[str, str],
    json_body: Any,
    body: Optional[str],
    username: Optional[str],
    password: Optional[str],
) -> httpx.Response:
    async with AuthSession(profile) as session:
        answer_signin(session, username, password)
        response = await session.client.request(
            method,
            path,
            headers=headers or None,
            json_body=json_body,
            body=body,
        )
        await response.aread()
        return response
