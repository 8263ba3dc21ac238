"""Init command -- create a profile for a protected API.

Implements ``dgauth init``: builds a :class:`~dgauth.models.Profile` from
the base URL and the sign-in/sign-out endpoints, saves it, and makes it the
default profile when none is set yet.
"""

from __future__ import annotations

from typing import Optional

import typer

from dgauth.exit_codes import EXIT_INVALID_USAGE
from dgauth.output import error, info, success, suggest


def init_command(
    name: str = typer.Option(..., "--name", "-n", help="Profile name."),
    base_url: str = typer.Option(..., "--base-url", help="Base URL of the API."),
    login_url: str = typer.Option("/signin", "--login-url", help="Sign-in endpoint."),
    login_method: str = typer.Option("POST", "--login-method", help="Sign-in HTTP method."),
    logout_url: str = typer.Option("/signout", "--logout-url", help="Sign-out endpoint."),
    logout_method: str = typer.Option("POST", "--logout-method", help="Sign-out HTTP method."),
    scheme: Optional[list[str]] = typer.Option(
        None, "--scheme", help="Challenge scheme to answer (repeatable, in order of preference)."
    ),
    automatic: bool = typer.Option(
        False, "--automatic", help="Always restore stored credentials on sign-in."
    ),
    remember: bool = typer.Option(
        True, "--remember/--no-remember", help="Store credentials after a successful sign-in."
    ),
) -> None:
    """Create a profile for an API.

    Example::

        dgauth init --name shop --base-url https://shop.example.com/api
        dgauth init --name shop --base-url https://shop.example.com \\
            --login-url /session --logout-method DELETE --scheme digest
    """
    from dgauth.auth import create_default_manager
    from dgauth.config import (
        check_profile_name,
        load_global_config,
        profile_exists,
        save_global_config,
        save_profile,
    )
    from dgauth.exceptions import ConfigError
    from dgauth.models import AuthSettings, ExchangeConfig, Profile

    try:
        check_profile_name(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    if profile_exists(name):
        info(f'Profile "{name}" already exists and will be overwritten.')

    auth = AuthSettings(
        login=ExchangeConfig(method=login_method, url=login_url),
        logout=ExchangeConfig(method=logout_method, url=logout_url),
        automatic=automatic,
        remember_credentials=remember,
    )
    if scheme:
        auth.schemes = [s.lower() for s in scheme]
        try:
            create_default_manager(auth.schemes)
        except ConfigError as exc:
            error(str(exc))
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_profile(Profile(name=name, base_url=base_url, auth=auth))

    config = load_global_config()
    if config.default_profile is None:
        config.default_profile = name
        save_global_config(config)
        info(f'"{name}" is now the default profile.')

    success(f'Profile "{name}" created.')
    suggest("Sign in: dgauth auth login --username <user>")
