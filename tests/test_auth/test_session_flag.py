"""Tests for the persisted session flag."""

from __future__ import annotations

import json

import pytest

from dgauth.auth.session_flag import MemorySessionFlag, SessionFlag


@pytest.fixture()
def flag(tmp_path: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> SessionFlag:
    monkeypatch.setattr(
        "dgauth.config.get_data_dir",
        lambda: tmp_path,  # type: ignore[union-attr]
    )
    return SessionFlag("test-profile")


class TestSessionFlag:
    def test_unset_by_default(self, flag: SessionFlag) -> None:
        assert not flag.is_set()

    def test_set_and_unset(self, flag: SessionFlag) -> None:
        flag.set(True)
        assert flag.is_set()
        flag.set(False)
        assert not flag.is_set()

    def test_file_contents(self, flag: SessionFlag, tmp_path) -> None:
        flag.set(True)
        data = json.loads((tmp_path / "sessions" / "test-profile.json").read_text())
        assert data["authenticated"] is True
        assert "updated_at" in data

    def test_survives_new_instance(self, flag: SessionFlag) -> None:
        flag.set(True)
        assert SessionFlag("test-profile").is_set()
        assert not SessionFlag("other").is_set()

    @pytest.mark.parametrize("content", ["{not json", "[]", '{"authenticated": "yes"}'])
    def test_unreadable_file_is_unset(self, flag: SessionFlag, tmp_path, content: str) -> None:
        path = tmp_path / "sessions" / "test-profile.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        assert not flag.is_set()


class TestMemorySessionFlag:
    def test_toggle(self) -> None:
        flag = MemorySessionFlag()
        assert not flag.is_set()
        flag.set(True)
        assert flag.is_set()
        assert MemorySessionFlag(authenticated=True).is_set()
