"""Holder for the authenticated user's profile data."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

_UNSET = object()


class AuthIdentity:
    """Plain get/set/clear container for the last-known identity record.

    The identity is ``None`` until a sign-in succeeds and after sign-out.

    Example::

        identity = AuthIdentity()
        identity.set({"id": 1, "name": "alice"})
        identity.set("role", "admin")
        assert identity.get("name") == "alice"
    """

    def __init__(self) -> None:
        self._identity: Optional[dict[str, Any]] = None

    def set(self, key_or_value: Any, value: Any = _UNSET) -> None:
        """Replace the whole identity, or set a single key.

        ``set(mapping)`` replaces the record; ``set(key, value)`` sets one
        field, creating an empty record first when none exists.

        Raises:
            TypeError: If the whole identity is set to something other than
                a mapping.
        """
        if value is not _UNSET:
            if self._identity is None:
                self._identity = {}
            self._identity[key_or_value] = value
            return
        if not isinstance(key_or_value, Mapping):
            raise TypeError(
                "You have to provide a mapping if you want to set the identity without a key."
            )
        self._identity = dict(key_or_value)

    def get(self, key: Optional[str] = None) -> Any:
        """Return the whole record, or one field (``None`` when absent)."""
        if key is None:
            return self._identity
        if self._identity is None:
            return None
        return self._identity.get(key)

    def has(self) -> bool:
        return self._identity is not None

    def clear(self) -> None:
        self._identity = None
