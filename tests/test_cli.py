"""End-to-end tests for the dgauth command line."""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any

import pytest

from dgauth.app import app
from dgauth.auth.credential_store import CredentialStore
from dgauth.auth.session_flag import SessionFlag
from dgauth.config import load_global_config, load_profile, profile_exists
from dgauth.session import AuthSession


@pytest.fixture
def served(isolated_config: Path, api: Any, monkeypatch: pytest.MonkeyPatch) -> Any:
    """Route every CLI session to the fake API and create the ``shop`` profile."""
    session_factory = functools.partial(AuthSession, transport=api.transport)
    monkeypatch.setattr("dgauth.commands.auth.AuthSession", session_factory)
    monkeypatch.setattr("dgauth.commands.request.AuthSession", session_factory)

    from typer.testing import CliRunner

    result = CliRunner().invoke(
        app, ["init", "--name", "shop", "--base-url", "https://api.example.com"]
    )
    assert result.exit_code == 0, result.output
    profile = load_profile("shop")
    profile.request.max_retries = 0
    from dgauth.config import save_profile

    save_profile(profile)
    return api


class TestVersion:
    def test_version(self, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "dgauth" in result.output


class TestInit:
    def test_creates_default_profile(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app,
            [
                "init",
                "--name", "shop",
                "--base-url", "https://api.example.com",
                "--login-url", "/session",
                "--logout-method", "delete",
                "--scheme", "Digest",
                "--automatic",
                "--no-remember",
            ],
        )
        assert result.exit_code == 0, result.output
        assert 'Profile "shop" created.' in result.output

        profile = load_profile("shop")
        assert profile.auth.login.url == "/session"
        assert profile.auth.logout.method == "DELETE"
        assert profile.auth.schemes == ["digest"]
        assert profile.auth.automatic is True
        assert profile.auth.remember_credentials is False
        assert load_global_config().default_profile == "shop"

    def test_second_profile_keeps_default(self, isolated_config: Path, cli_runner: Any) -> None:
        cli_runner.invoke(app, ["init", "--name", "a", "--base-url", "https://a"])
        cli_runner.invoke(app, ["init", "--name", "b", "--base-url", "https://b"])
        assert load_global_config().default_profile == "a"

    def test_unknown_scheme(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app, ["init", "--name", "x", "--base-url", "https://x", "--scheme", "ntlm"]
        )
        assert result.exit_code == 2
        assert "Unknown auth scheme" in result.output
        assert not profile_exists("x")

    def test_invalid_name(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["init", "--name", "../x", "--base-url", "https://x"])
        assert result.exit_code == 2
        assert "Invalid profile name" in result.output


class TestProfileCommands:
    def test_list_marks_default(self, isolated_config: Path, cli_runner: Any) -> None:
        cli_runner.invoke(app, ["init", "--name", "a", "--base-url", "https://a"])
        cli_runner.invoke(app, ["init", "--name", "b", "--base-url", "https://b"])
        result = cli_runner.invoke(app, ["profile", "list"])
        assert result.exit_code == 0
        assert "a (default)" in result.output
        assert "b" in result.output

    def test_list_empty(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["profile", "list"])
        assert result.exit_code == 0
        assert "No profiles configured." in result.output

    def test_use_and_show(self, isolated_config: Path, cli_runner: Any) -> None:
        cli_runner.invoke(app, ["init", "--name", "a", "--base-url", "https://a"])
        cli_runner.invoke(app, ["init", "--name", "b", "--base-url", "https://b"])

        result = cli_runner.invoke(app, ["profile", "use", "b"])
        assert result.exit_code == 0
        assert load_global_config().default_profile == "b"

        result = cli_runner.invoke(app, ["--json", "profile", "show", "b"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["base_url"] == "https://b"

    def test_use_missing(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["profile", "use", "ghost"])
        assert result.exit_code == 2

    def test_delete(self, isolated_config: Path, cli_runner: Any) -> None:
        cli_runner.invoke(app, ["init", "--name", "a", "--base-url", "https://a"])
        CredentialStore("a").set_credentials("alice", "secret")
        SessionFlag("a").set(True)

        result = cli_runner.invoke(app, ["--force", "profile", "delete", "a"])
        assert result.exit_code == 0, result.output
        assert not profile_exists("a")
        assert not CredentialStore("a").has_credential()
        assert not SessionFlag("a").is_set()
        assert load_global_config().default_profile is None

    def test_delete_cancelled(self, isolated_config: Path, cli_runner: Any) -> None:
        cli_runner.invoke(app, ["init", "--name", "a", "--base-url", "https://a"])
        result = cli_runner.invoke(app, ["profile", "delete", "a"], input="n\n")
        assert result.exit_code == 0
        assert profile_exists("a")


class TestAuthCommands:
    def test_no_profile(self, isolated_config: Path, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["auth", "status"])
        assert result.exit_code == 2
        assert "No profile selected." in result.output

    def test_login_status_logout(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app, ["auth", "login", "--username", "alice", "--password", "secret"]
        )
        assert result.exit_code == 0, result.output
        assert 'Signed in to "shop".' in result.output
        assert "admin" in result.output
        assert SessionFlag("shop").is_set()

        result = cli_runner.invoke(app, ["--json", "auth", "status"])
        assert result.exit_code == 0, result.output
        status = json.loads(result.stdout)
        assert status["signed_in"] is True
        assert status["username"] == "alice"

        result = cli_runner.invoke(app, ["auth", "logout"])
        assert result.exit_code == 0, result.output
        assert not SessionFlag("shop").is_set()
        assert served.paths()[-1] == "POST /signout"

    def test_login_wrong_password(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app, ["auth", "login", "--username", "alice", "--password", "nope"]
        )
        assert result.exit_code == 3
        assert "Sign-in failed" in result.output
        assert not SessionFlag("shop").is_set()

    def test_login_without_credentials(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["auth", "login"])
        assert result.exit_code == 3
        assert "Credentials required" in result.output

    def test_login_from_environment(
        self, served: Any, cli_runner: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DGAUTH_USERNAME", "alice")
        monkeypatch.setenv("DGAUTH_PASSWORD", "secret")
        result = cli_runner.invoke(app, ["auth", "login"])
        assert result.exit_code == 0, result.output

    def test_forget(self, served: Any, cli_runner: Any) -> None:
        CredentialStore("shop").set_credentials("alice", "secret")
        SessionFlag("shop").set(True)
        result = cli_runner.invoke(app, ["auth", "forget"], input="y\n")
        assert result.exit_code == 0, result.output
        assert not CredentialStore("shop").has_credential()
        assert not SessionFlag("shop").is_set()


class TestRequestCommand:
    def test_request_signs_in_and_replays(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app,
            ["--json", "request", "GET", "/orders", "-u", "alice", "--password", "secret"],
        )
        assert result.exit_code == 0, result.output
        assert "A-1" in result.output
        assert served.paths() == ["GET /orders", "POST /signin", "GET /orders"]

    def test_request_with_remembered_session(self, served: Any, cli_runner: Any) -> None:
        login = cli_runner.invoke(
            app, ["auth", "login", "--username", "alice", "--password", "secret"]
        )
        assert login.exit_code == 0, login.output

        result = cli_runner.invoke(app, ["request", "GET", "/orders"])
        assert result.exit_code == 0, result.output
        assert "A-1" in result.output

    def test_request_without_credentials_fails(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["request", "GET", "/orders"])
        assert result.exit_code == 3
        assert "HTTP 401" in result.output

    def test_not_found(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(
            app, ["request", "GET", "/nothing", "-u", "alice", "--password", "secret"]
        )
        assert result.exit_code == 4

    def test_malformed_header(self, served: Any, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["request", "GET", "/orders", "-H", "broken"])
        assert result.exit_code == 2
        assert "Invalid header" in result.output
