"""Where dgauth keeps its files, and how the active profile is chosen.

Two trees are used:

* the **config tree** holds what the user edits or creates with
  ``dgauth init``: ``config.json`` (a :class:`~dgauth.models.GlobalConfig`)
  and ``profiles/<name>.json`` (one :class:`~dgauth.models.Profile` per API);
* the **data tree** holds state written by the library itself:
  ``credentials/<name>.json``, ``sessions/<name>.json`` and crash ``logs/``.

On Linux and the BSDs both trees follow the XDG Base Directory layout
(``~/.config/dgauth`` and ``~/.local/share/dgauth``); elsewhere they live
under ``~/.dgauth``. Every write goes through :func:`atomic_write`, so a
profile, a credential pair or a session flag is either the old or the new
version on disk, never a torn one.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import re
import tempfile
from pathlib import Path
from typing import Optional

from dgauth.exceptions import ConfigError
from dgauth.models import GlobalConfig, Profile

logger = logging.getLogger(__name__)

_APP_NAME = "dgauth"
_CONFIG_FILENAME = "config.json"
_PROFILE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _home_tree() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_home(env_var: str, *default: str) -> Path:
    value = os.environ.get(env_var, "")
    return Path(value) if value else Path.home().joinpath(*default)


def _ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return (and create) the config tree.

    ``$XDG_CONFIG_HOME/dgauth`` on Linux/BSD, ``~/.dgauth`` elsewhere.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_home("XDG_CONFIG_HOME", ".config") / _APP_NAME)
    return _ensure(_home_tree())


def get_data_dir() -> Path:
    """Return (and create) the data tree.

    ``$XDG_DATA_HOME/dgauth`` on Linux/BSD, ``~/.dgauth/data`` elsewhere.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_home("XDG_DATA_HOME", ".local", "share") / _APP_NAME)
    return _ensure(_home_tree() / "data")


def get_profiles_dir() -> Path:
    return _ensure(get_config_dir() / "profiles")


def get_credentials_dir() -> Path:
    """Directory of the per-profile credential files (see :mod:`dgauth.auth.credential_store`)."""
    return _ensure(get_data_dir() / "credentials")


def get_sessions_dir() -> Path:
    """Directory of the per-profile session flags (see :mod:`dgauth.auth.session_flag`)."""
    return _ensure(get_data_dir() / "sessions")


def get_logs_dir() -> Path:
    return _ensure(get_data_dir() / "logs")


def check_profile_name(name: str) -> str:
    """Return *name* if it can be used as a file name in every tree.

    Raises:
        ConfigError: If *name* is empty, starts with a dot or dash, or
            contains anything but letters, digits, ``.``, ``_`` and ``-``.
    """
    if not _PROFILE_NAME.match(name):
        raise ConfigError(
            f"Invalid profile name {name!r}: use letters, digits, '.', '_' and '-'"
        )
    return name


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The content goes to a sibling temporary file first, is flushed and
    fsynced, then moved over *path* with :func:`os.replace`. On any error the
    temporary file is removed and the exception propagates.

    Args:
        path: Destination file; missing parent directories are created.
        data: Text to write (UTF-8).
        mode: Permission bits applied before the content is written, e.g.
            ``0o600`` for credentials.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            if mode is not None:
                os.chmod(tmp.name, mode)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
        raise


def _write_model_json(path: Path, data: dict) -> None:
    atomic_write(path, json.dumps(data, indent=2) + "\n")


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; defaults when the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_model_json(_global_config_path(), config.model_dump(mode="json"))


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{check_profile_name(name)}.json"


def list_profiles() -> list[str]:
    """Names of all saved profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> Profile:
    """Read and validate ``profiles/<name>.json``.

    Raises:
        ConfigError: If the name is invalid, the file is missing, or its
            content is not a valid profile.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    try:
        return Profile.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Write *profile* to ``profiles/<profile.name>.json``."""
    _write_model_json(_profile_path(profile.name), profile.model_dump(mode="json"))


def delete_profile(name: str) -> None:
    """Remove a saved profile. Its credentials and session flag are left alone.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Active profile ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Pick the active profile and apply base URL overrides.

    The profile name comes from the first of: ``cli_profile``,
    ``$DGAUTH_PROFILE``, ``default_profile`` in the global config, or the
    only saved profile when ``auto_select_single_profile`` is on. The base
    URL is overridden by ``cli_base_url``, else by ``$DGAUTH_BASE_URL``.

    Returns:
        ``(global_config, profile)``; ``profile`` is ``None`` when no name
        could be resolved.

    Raises:
        ConfigError: If the resolved profile cannot be loaded.
    """
    global_cfg = load_global_config()

    candidates = (
        ("--profile", cli_profile),
        ("DGAUTH_PROFILE", os.environ.get("DGAUTH_PROFILE") or None),
        ("default_profile", global_cfg.default_profile),
    )
    source, name = next(((s, n) for s, n in candidates if n is not None), ("", None))

    if name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            source, name = "single profile", profiles[0]

    if name is None:
        return global_cfg, None

    logger.debug("Using profile %r (from %s)", name, source)
    profile = load_profile(name)

    base_url = cli_base_url if cli_base_url is not None else os.environ.get("DGAUTH_BASE_URL")
    if base_url:
        profile.base_url = base_url
    return global_cfg, profile
