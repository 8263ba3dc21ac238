"""Canonical Pydantic models shared across all dgauth modules.

These are the configuration models serialised as JSON in the user's config
directory:

* :class:`ExchangeConfig` -- how to reach the sign-in or sign-out endpoint.
* :class:`CallbacksConfig` -- callback factories attached to sign-in and
  sign-out handles.
* :class:`AuthSettings` -- the authentication section of a profile.
* :class:`RequestConfig` -- transport settings.
* :class:`OutputConfig` and :class:`GlobalConfig` -- user-wide defaults.
* :class:`Profile` -- one API target.

All models use Pydantic v2. :class:`Profile` uses ``extra="allow"`` so that
unknown keys written by newer versions are preserved in ``model_extra``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExchangeConfig(BaseModel):
    """A single request/response exchange against the authentication server.

    Example::

        ExchangeConfig(method="POST", url="/signin")
    """

    method: str = Field(default="POST", description="HTTP method of the exchange")
    url: str = Field(description="Absolute URL or path relative to the profile base URL")
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: Optional[Any] = Field(
        default=None, description="Optional JSON body sent with the exchange"
    )

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()


class CallbacksConfig(BaseModel):
    """Ordered callback factories, as ``"module:attribute"`` import strings.

    Each factory is invoked by dependency lookup when a new sign-in or
    sign-out attempt starts and must return an object (or mapping) exposing
    ``successful`` and ``error`` handlers, plus ``required`` for sign-in.
    """

    login: list[str] = Field(default_factory=list)
    logout: list[str] = Field(default_factory=list)


class AuthSettings(BaseModel):
    """Authentication configuration embedded in a :class:`Profile`.

    Supplied once at startup and read-only thereafter.
    """

    login: ExchangeConfig = Field(
        default_factory=lambda: ExchangeConfig(method="POST", url="/signin")
    )
    logout: ExchangeConfig = Field(
        default_factory=lambda: ExchangeConfig(method="POST", url="/signout")
    )
    automatic: bool = Field(
        default=False,
        description="Restore stored credentials on sign-in even when the session flag is unset",
    )
    remember_credentials: bool = Field(
        default=True,
        description="Persist credentials to the credential store after a successful sign-in",
    )
    challenge_header: str = Field(
        default="WWW-Authenticate",
        description="Response header carrying the authentication challenge",
    )
    schemes: list[str] = Field(
        default_factory=lambda: ["digest", "basic"],
        description="Challenge schemes answered by this profile, in order of preference",
    )
    callbacks: CallbacksConfig = Field(default_factory=CallbacksConfig)


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every API call in a profile."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=3, description="Max retry attempts")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/dgauth/config.json``."""

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Per-API profile stored as JSON under the ``profiles/`` config directory.

    See Also:
        :func:`~dgauth.config.load_profile`: Deserialise a profile by name.
        :func:`~dgauth.config.save_profile`: Persist a profile to disk.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    base_url: str = Field(description="Base URL of the protected API")
    auth: AuthSettings = Field(default_factory=AuthSettings)
    request: RequestConfig = Field(default_factory=RequestConfig)
