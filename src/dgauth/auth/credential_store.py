"""Persistent username/password storage scoped per profile.

Stores credentials in ``~/.local/share/dgauth/credentials/<profile>.json``
(XDG) or the platform-equivalent directory. Files are written atomically
with ``0o600`` permissions so that secrets are never world-readable, even
momentarily.

:class:`MemoryCredentialStore` implements the same interface without
touching the filesystem, for tests and short-lived sessions.

See Also:
    :class:`~dgauth.auth.service.AuthService` -- restores and persists
    credentials through the :class:`CredentialStorage` interface.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from dgauth.config import atomic_write, get_credentials_dir


class CredentialStorage(Protocol):
    """Interface consumed by the orchestrator for remembered credentials."""

    def has_credential(self) -> bool: ...

    def get_username(self) -> str: ...

    def get_password(self) -> str: ...

    def set_credentials(self, username: str, password: str) -> None: ...

    def clear(self) -> None: ...


class CredentialEntry(BaseModel):
    """A stored username/password pair.

    Attributes:
        username: Account name sent to the sign-in exchange.
        password: Secret sent to the sign-in exchange.
        stored_at: UTC time the pair was last persisted.
    """

    username: str
    password: str
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CredentialStore:
    """Read/write the credential pair for a single profile.

    Args:
        profile_name: The profile identifier used to derive the file name.

    Example::

        store = CredentialStore("my-api")
        store.set_credentials("alice", "pw1")
        assert store.has_credential()
        assert store.get_username() == "alice"
    """

    def __init__(self, profile_name: str) -> None:
        self._profile_name = profile_name
        self._path = get_credentials_dir() / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this profile's credential file."""
        return self._path

    def save(self, entry: CredentialEntry) -> None:
        """Persist *entry* atomically with ``0o600`` permissions."""
        text = json.dumps(entry.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[CredentialEntry]:
        """Return the stored entry, or ``None`` if absent or unreadable."""
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return CredentialEntry.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError):
            return None

    def has_credential(self) -> bool:
        entry = self.load()
        return entry is not None and bool(entry.username)

    def get_username(self) -> str:
        entry = self.load()
        return entry.username if entry is not None else ""

    def get_password(self) -> str:
        entry = self.load()
        return entry.password if entry is not None else ""

    def set_credentials(self, username: str, password: str) -> None:
        self.save(CredentialEntry(username=username, password=password))

    def clear(self) -> None:
        """Delete the stored credential file if it exists."""
        if self._path.is_file():
            self._path.unlink()


class MemoryCredentialStore:
    """In-process :class:`CredentialStorage` that forgets everything on exit."""

    def __init__(self, username: str = "", password: str = "") -> None:
        self._username = username
        self._password = password

    def has_credential(self) -> bool:
        return bool(self._username)

    def get_username(self) -> str:
        return self._username

    def get_password(self) -> str:
        return self._password

    def set_credentials(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    def clear(self) -> None:
        self._username = ""
        self._password = ""
