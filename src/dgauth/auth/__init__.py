"""Authentication orchestration for dgauth.

The main entry points are:

- :class:`AuthService` -- the sign-in / sign-out state machine.
- :class:`AuthManager` -- registry of credential-stamping
  :class:`AuthClient` implementations keyed by challenge scheme, and the
  challenge-header parser.
- :func:`create_default_manager` -- an :class:`AuthManager` with the
  built-in ``digest`` and ``basic`` clients.
- :class:`CredentialStore` / :class:`MemoryCredentialStore` -- remembered
  credentials.
- :class:`SessionFlag` / :class:`MemorySessionFlag` -- the persisted
  "authenticated" marker.
"""

from dgauth.auth.base import AuthClient
from dgauth.auth.callbacks import Callbacks, CallbackResolver
from dgauth.auth.challenge import Challenge, parse_challenges
from dgauth.auth.credential_store import (
    CredentialEntry,
    CredentialStorage,
    CredentialStore,
    MemoryCredentialStore,
)
from dgauth.auth.manager import AuthManager, create_default_manager
from dgauth.auth.service import AuthService
from dgauth.auth.session_flag import MemorySessionFlag, SessionFlag

__all__ = [
    "AuthClient",
    "AuthManager",
    "AuthService",
    "CallbackResolver",
    "Callbacks",
    "Challenge",
    "CredentialEntry",
    "CredentialStorage",
    "CredentialStore",
    "MemoryCredentialStore",
    "MemorySessionFlag",
    "SessionFlag",
    "create_default_manager",
    "parse_challenges",
]
