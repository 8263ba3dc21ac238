"""The persisted "last known state is authenticated" marker.

The flag outlives the process so that a later run can decide, before any
identity is loaded, whether stored credentials should be restored on
sign-in. It is only a hint: the flag may be stale, which is why
:meth:`~dgauth.auth.service.AuthService.is_authenticated` also requires an
identity.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Protocol

from dgauth.config import atomic_write, get_sessions_dir


class AuthFlag(Protocol):
    def is_set(self) -> bool: ...

    def set(self, authenticated: bool) -> None: ...


class SessionFlag:
    """File-backed :class:`AuthFlag` stored at ``<data_dir>/sessions/<profile>.json``."""

    def __init__(self, profile_name: str) -> None:
        self._path = get_sessions_dir() / f"{profile_name}.json"

    def is_set(self) -> bool:
        if not self._path.is_file():
            return False
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return False
        return isinstance(data, dict) and data.get("authenticated") is True

    def set(self, authenticated: bool) -> None:
        payload = {
            "authenticated": authenticated,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        atomic_write(self._path, json.dumps(payload) + "\n", mode=0o600)


class MemorySessionFlag:
    def __init__(self, authenticated: bool = False) -> None:
        self._authenticated = authenticated

    def is_set(self) -> bool:
        return self._authenticated

    def set(self, authenticated: bool) -> None:
        self._authenticated = authenticated
