"""Shared test fixtures for dgauth.

Provides config isolation, output state management, a CLI runner, and
:class:`FakeApi` -- an in-memory API guarded by HTTP Basic or Digest
authentication and served through :class:`httpx.MockTransport`.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from dgauth.auth.challenge import parse_challenges
from dgauth.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a manager created
    during one test must not leak into the next.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo the handler and level the CLI installs on the ``dgauth`` logger."""
    yield
    logger = logging.getLogger("dgauth")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and data to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config, clears all DGAUTH_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("dgauth.config._is_xdg_platform", lambda: True)

    for var in [
        "DGAUTH_PROFILE",
        "DGAUTH_BASE_URL",
        "DGAUTH_USERNAME",
        "DGAUTH_PASSWORD",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakeApi:
    """A small API whose every endpoint except ``/signout`` requires authentication.

    * ``/signin`` returns the identity of the authenticated user.
    * ``/orders`` returns a list of orders.
    * ``/signout`` always succeeds unless :attr:`logout_status` says otherwise.

    Unauthenticated requests get a ``401`` with a challenge for
    :attr:`scheme` (``"basic"``, ``"digest"``, or anything else for an
    unsupported ``Bearer`` challenge). Every received request is recorded in
    :attr:`requests`.
    """

    realm = "api@example.com"
    nonce = "dcd98b7102dd2f0e8b11d0f600bfb0c093"
    opaque = "5ccc069c403ebaf9f0171e9517f40e41"

    def __init__(self, scheme: str = "basic", users: Optional[dict[str, str]] = None) -> None:
        self.scheme = scheme
        self.users = users if users is not None else {"alice": "secret"}
        self.requests: list[httpx.Request] = []
        self.logout_status = 200

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/signout":
            if self.logout_status != 200:
                return httpx.Response(self.logout_status, json={"message": "sign-out refused"})
            return httpx.Response(200, json={"signed_out": True})

        user = self.authenticate(request)
        if user is None:
            return self.challenge()
        if path == "/signin":
            return httpx.Response(200, json={"username": user, "role": "admin"})
        if path == "/orders":
            return httpx.Response(200, json=[{"id": 1, "sku": "A-1"}])
        return httpx.Response(404, json={"message": "not found"})

    def challenge(self) -> httpx.Response:
        if self.scheme == "basic":
            header = f'Basic realm="{self.realm}"'
        elif self.scheme == "digest":
            header = (
                f'Digest realm="{self.realm}", qop="auth", '
                f'nonce="{self.nonce}", opaque="{self.opaque}"'
            )
        else:
            header = f'Bearer realm="{self.realm}"'
        return httpx.Response(
            401,
            headers={"WWW-Authenticate": header},
            json={"message": "Unauthorized"},
        )

    def authenticate(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization")
        if not header:
            return None
        if self.scheme == "basic" and header.startswith("Basic "):
            decoded = base64.b64decode(header[6:]).decode("utf-8")
            username, _, password = decoded.partition(":")
            return username if self.users.get(username) == password else None
        if self.scheme == "digest" and header.startswith("Digest "):
            return self._check_digest(request, parse_challenges(header)[0].params)
        return None

    def _check_digest(self, request: httpx.Request, params: dict[str, str]) -> Optional[str]:
        username = params.get("username", "")
        password = self.users.get(username)
        if password is None or params.get("nonce") != self.nonce:
            return None

        def md5(value: str) -> str:
            return hashlib.md5(value.encode("utf-8")).hexdigest()

        ha1 = md5(f"{username}:{self.realm}:{password}")
        ha2 = md5(f"{request.method}:{params['uri']}")
        expected = md5(f"{ha1}:{self.nonce}:{params['nc']}:{params['cnonce']}:auth:{ha2}")
        return username if params.get("response") == expected else None


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def make_api():
    """Return the :class:`FakeApi` class for tests that need another scheme."""
    return FakeApi


def record_events(bus: Any) -> list[tuple[str, Any]]:
    """Subscribe to every event on *bus* and return the list they are appended to."""
    from dgauth.events import AuthEvent

    seen: list[tuple[str, Any]] = []
    for event in AuthEvent:
        bus.subscribe(event, lambda payload, name=event.value: seen.append((name, payload)))
    return seen


@pytest.fixture
def recorder():
    """Return :func:`record_events` for attaching an event log to a bus."""
    return record_events
