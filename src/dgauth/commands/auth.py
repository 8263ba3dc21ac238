"""Auth commands -- manage the session of the active profile.

Provides the ``dgauth auth`` group:

* ``login`` -- perform the sign-in exchange and print the identity;
* ``logout`` -- perform the sign-out exchange;
* ``status`` -- report the session flag and stored credentials;
* ``forget`` -- drop stored credentials and the session flag locally.

Typical workflow::

    dgauth auth login --username alice --password secret
    dgauth request GET /orders
    dgauth auth logout
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import typer

from dgauth.commands.common import active_profile, fail
from dgauth.deferred import Progress
from dgauth.exceptions import DgAuthError, LoginError
from dgauth.models import Profile
from dgauth.output import format_response, info, print_record, success, suggest
from dgauth.session import AuthSession


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(
        None, "--username", "-u", envvar="DGAUTH_USERNAME", help="Username."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="DGAUTH_PASSWORD", help="Password."
    ),
) -> None:
    """Sign in and print the signed-in identity.

    Without ``--username`` the stored credentials are used when the profile
    remembers a session (or signs in automatically).

    Raises:
        typer.Exit: With code 3 when the server rejects the credentials or
            requires credentials that were not supplied.

    Example::

        dgauth auth login -u alice --password secret
        DGAUTH_USERNAME=alice DGAUTH_PASSWORD=secret dgauth auth login
    """
    profile = active_profile(ctx)
    try:
        identity = asyncio.run(_login(profile, username, password))
    except DgAuthError as exc:
        fail(exc)
    success(f'Signed in to "{profile.name}".')
    if identity:
        format_response(identity)


async def _login(profile: Profile, username: Optional[str], password: Optional[str]) -> Any:
    async with AuthSession(profile) as session:
        service = session.service
        if username:
            service.submit_credentials(username, password or "")
        status = await service.sign_in().changed()
        if isinstance(status, Progress):
            raise LoginError(
                "Credentials required: pass --username and --password",
                payload=status.info,
            )
        return status.unwrap()


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Sign out of the active profile.

    The sign-out exchange is issued even when no session is known locally.

    Example::

        dgauth auth logout
    """
    profile = active_profile(ctx)
    try:
        data = asyncio.run(_logout(profile))
    except DgAuthError as exc:
        fail(exc)
    success(f'Signed out of "{profile.name}".')
    if data:
        format_response(data)


async def _logout(profile: Profile) -> Any:
    async with AuthSession(profile) as session:
        return await session.service.sign_out()


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the locally known session state of the active profile.

    Example::

        dgauth auth status
        dgauth --json auth status
    """
    from dgauth.auth import CredentialStore, SessionFlag

    profile = active_profile(ctx)
    store = CredentialStore(profile.name)
    entry = store.load()
    print_record(
        {
            "profile": profile.name,
            "base_url": profile.base_url,
            "signed_in": SessionFlag(profile.name).is_set(),
            "username": entry.username if entry else None,
            "stored_at": entry.stored_at if entry else None,
            "automatic": profile.auth.automatic,
        },
        title="Session",
    )


@auth_app.command("forget")
def auth_forget(
    ctx: typer.Context,
) -> None:
    """Delete the stored credentials and clear the session flag.

    Nothing is sent to the server; use ``logout`` to end the server session.
    Asks for confirmation unless ``--force`` is active.

    Example::

        dgauth auth forget --force
    """
    from dgauth.auth import CredentialStore, SessionFlag

    profile = active_profile(ctx)
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f'Forget stored credentials for "{profile.name}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    CredentialStore(profile.name).clear()
    SessionFlag(profile.name).set(False)
    success(f'Forgot stored credentials for "{profile.name}".')
    suggest("Sign in again: dgauth auth login --username <user>")
