"""Typer application and CLI entry point for dgauth.

Registers the built-in commands (``init``, ``request``, ``auth``,
``profile``) on the root application. :func:`main` is the console-script
entry point declared in ``pyproject.toml``: it installs a SIGINT handler,
invokes the app, maps :class:`~dgauth.exceptions.DgAuthError` to its exit
code and writes a crash log for anything else.

See Also:
    :mod:`dgauth.config`: Profile and global configuration resolution.
    :mod:`dgauth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from dgauth import __version__
from dgauth.commands.auth import auth_app
from dgauth.commands.init import init_command
from dgauth.commands.profile import profile_app
from dgauth.commands.request import request_command
from dgauth.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="dgauth",
    help="Call HTTP APIs protected by Digest or Basic authentication.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("init")(init_command)
app.command("request")(request_command)
app.add_typer(auth_app, name="auth", help="Sign in, sign out and session state.")
app.add_typer(profile_app, name="profile", help="Profile management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dgauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the profile's base URL."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~dgauth.output.OutputManager`, routes library
    logging to stderr, and stores shared options in ``ctx.obj``.
    """
    from dgauth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["base_url"] = base_url
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _configure_logging(verbose: bool) -> None:
    """Send ``dgauth.*`` log records to stderr; debug level with ``--verbose``."""
    logger = logging.getLogger("dgauth")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    # The stream is bound at construction; rebind on every invocation.
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``<data_dir>/logs`` and return its path."""
    from dgauth.config import get_logs_dir

    logs_dir = get_logs_dir()
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``dgauth`` console script.

    Unhandled :class:`~dgauth.exceptions.DgAuthError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from dgauth.exceptions import DgAuthError
        from dgauth.output import error

        if isinstance(exc, DgAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
