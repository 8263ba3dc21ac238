"""Profile commands -- list, inspect, select and delete profiles."""

from __future__ import annotations

import typer

from dgauth.exceptions import ConfigError
from dgauth.exit_codes import EXIT_INVALID_USAGE
from dgauth.output import error, format_response, get_output, info, success, suggest


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("list")
def profile_list() -> None:
    """List configured profiles, marking the default one.

    Example::

        dgauth profile list
    """
    from dgauth.config import list_profiles, load_global_config

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: dgauth init --name myapi --base-url https://api.example.com")
        return

    default = load_global_config().default_profile
    output = get_output()
    for name in names:
        output.print_data(f"{name} (default)" if name == default else name)


@profile_app.command("show")
def profile_show(
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Print a profile's configuration.

    Example::

        dgauth profile show shop
        dgauth --json profile show shop
    """
    from dgauth.config import load_profile

    try:
        profile = load_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    format_response(profile.model_dump(mode="json"))


@profile_app.command("use")
def profile_use(
    name: str = typer.Argument(help="Profile to make the default."),
) -> None:
    """Make *name* the default profile.

    Example::

        dgauth profile use shop
    """
    from dgauth.config import load_global_config, profile_exists, save_global_config

    try:
        exists = profile_exists(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    if not exists:
        error(f"Profile '{name}' not found.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'"{name}" is now the default profile.')


@profile_app.command("delete")
def profile_delete(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile to delete."),
) -> None:
    """Delete a profile together with its stored credentials and session flag.

    Asks for confirmation unless ``--force`` is active.

    Example::

        dgauth profile delete shop --force
    """
    from dgauth.auth import CredentialStore, SessionFlag
    from dgauth.config import delete_profile, load_global_config, save_global_config

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f'Delete profile "{name}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    CredentialStore(name).clear()
    SessionFlag(name).set(False)

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)

    success(f'Profile "{name}" deleted.')
