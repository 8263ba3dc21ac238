"""Resolution of sign-in / sign-out callback factories by dependency lookup.

A callback factory is a callable, or a ``"module:attribute"`` import string
naming one. When a new attempt starts, the factory is invoked with keyword
arguments looked up by *parameter name* among the session's services::

    def audit_callbacks(identity, events):
        return {
            "successful": lambda value: print("hello", identity.get("name")),
            "error": lambda exc: print("sign-in failed", exc),
            "required": lambda info: print("credentials needed"),
        }

The factory returns an object or mapping exposing any of ``successful``,
``error`` and ``required``; missing handlers are skipped.
"""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from dgauth.exceptions import ConfigError

CallbackFactory = Union[str, Callable[..., Any]]


@dataclass(frozen=True)
class Callbacks:
    """Handlers attached to a sign-in or sign-out handle."""

    successful: Optional[Callable[[Any], Any]] = None
    error: Optional[Callable[[BaseException], Any]] = None
    required: Optional[Callable[[Any], Any]] = None


def load_factory(reference: str) -> Callable[..., Any]:
    """Import the callable named by ``"package.module:attribute"``.

    Raises:
        ConfigError: If the reference is malformed or cannot be imported.
    """
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(
            f"Invalid callback reference '{reference}' (expected 'module:attribute')"
        )
    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot load callback '{reference}': {exc}") from exc
    if not callable(target):
        raise ConfigError(f"Callback '{reference}' is not callable")
    return target


class CallbackResolver:
    """Invoke callback factories with services injected by parameter name.

    Args:
        services: Mapping of injectable names to service instances.
    """

    def __init__(self, services: Optional[Mapping[str, Any]] = None) -> None:
        self._services: dict[str, Any] = dict(services or {})

    def provide(self, name: str, service: Any) -> None:
        self._services[name] = service

    def invoke(self, factory: CallbackFactory) -> Callbacks:
        """Call *factory* and normalise what it returns into :class:`Callbacks`.

        Raises:
            ConfigError: If the factory cannot be loaded or requests a
                service that is not available.
        """
        func = load_factory(factory) if isinstance(factory, str) else factory
        kwargs: dict[str, Any] = {}
        for name, param in inspect.signature(func).parameters.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if name in self._services:
                kwargs[name] = self._services[name]
            elif param.default is param.empty:
                available = ", ".join(sorted(self._services)) or "(none)"
                raise ConfigError(
                    f"Callback factory {func!r} requires unknown service '{name}'. "
                    f"Available services: {available}"
                )
        return _as_callbacks(func(**kwargs))


def _as_callbacks(result: Any) -> Callbacks:
    if isinstance(result, Callbacks):
        return result
    if result is None:
        return Callbacks()
    if isinstance(result, Mapping):
        getter = result.get
    else:
        def getter(name: str) -> Any:
            return getattr(result, name, None)
    return Callbacks(
        successful=getter("successful"),
        error=getter("error"),
        required=getter("required"),
    )
