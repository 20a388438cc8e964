"""Capability discovery for the ``module`` option.

A ``module`` may be a Python module, any object, an import path string
("pkg.mod" or "pkg.mod:attr"), or an explicit Capabilities instance. It can
provide up to two capabilities:

  ip_access_allow_list()                 — zero-argument allow-list provider
  ip_access_on_blocked(request, options) — preferred blocked handler
  init(options) + call(request, options) — generic pipeline stage, used as
                                           the blocked handler when the
                                           preferred handler is absent

Discovery happens once, at setup. The result is a Capabilities value holding
plain references; nothing is introspected per request.

PRECEDENCE: capabilities found on ``module`` override explicit ``allow`` /
``on_blocked`` values. A module without a capability leaves the explicit
value for that key untouched.
"""

from __future__ import annotations

import importlib
import inspect
import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from ip_access_control.errors import InvalidOptionError
from ip_access_control.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Entry point names ───────────────────────────────────────────────────────

ALLOW_LIST_PROVIDER: str = "ip_access_allow_list"
BLOCKED_HANDLER: str = "ip_access_on_blocked"


# ─── Helpers ──────────────────────────────────────────────────────────────────


def accepts_arguments(func: Callable[..., Any], count: int) -> bool:
    """Return True if ``func`` can be called with ``count`` positional arguments.

    Callables without an inspectable signature (some builtins) are assumed
    to accept the call.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(*([None] * count))
    except TypeError:
        return False
    return True


def import_object(path: str) -> Any:
    """Import ``"pkg.module"`` or ``"pkg.module:attribute"``.

    Raises:
        InvalidOptionError: module or attribute cannot be found.
    """
    module_name, _, attribute = path.partition(":")
    try:
        target = importlib.import_module(module_name)
    except ImportError as exc:
        raise InvalidOptionError(f"Cannot import {module_name!r}: {exc}") from exc
    if not attribute:
        return target
    try:
        for part in attribute.split("."):
            target = getattr(target, part)
    except AttributeError as exc:
        raise InvalidOptionError(f"{path!r} does not exist: {exc}") from exc
    return target


def _display_name(target: Any) -> str:
    return getattr(target, "__name__", None) or type(target).__name__


# ─── BoundReference ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BoundReference:
    """A reference to a named function on a module or object.

    ``BoundReference(access_rules, "ip_access_allow_list")`` refers to
    ``access_rules.ip_access_allow_list``. A ``(module, "name")`` tuple is
    accepted anywhere a BoundReference is, when the first item is a module
    or a class.
    """

    target: Any
    name: str

    @classmethod
    def coerce(cls, value: Any) -> Optional["BoundReference"]:
        """Return ``value`` as a BoundReference, or None if it is not one."""
        if isinstance(value, BoundReference):
            return value
        if (
            isinstance(value, tuple)
            and len(value) == 2
            and isinstance(value[0], (types.ModuleType, type))
            and isinstance(value[1], str)
        ):
            return cls(value[0], value[1])
        return None

    @property
    def qualname(self) -> str:
        return f"{_display_name(self.target)}.{self.name}"

    def resolve(self, arity: int) -> Callable[..., Any]:
        """Look up the referenced function and check it takes ``arity`` arguments.

        Raises:
            InvalidOptionError: attribute missing, not callable, or wrong arity.
        """
        func = getattr(self.target, self.name, None)
        if not callable(func):
            raise InvalidOptionError(f"{self.qualname} is not a callable attribute")
        if not accepts_arguments(func, arity):
            raise InvalidOptionError(f"{self.qualname} must accept {arity} argument(s)")
        return func

    def __str__(self) -> str:
        return self.qualname


# ─── PipelineStage ────────────────────────────────────────────────────────────


@runtime_checkable
class PipelineStage(Protocol):
    """An object usable as a nested pipeline stage: ``call(request, init(options))``.

    ``call`` may return a Response or an awaitable resolving to one.
    """

    def init(self, options: Any) -> Any:
        ...

    def call(self, request: Any, options: Any) -> Any:
        ...


def is_pipeline_stage(value: Any) -> bool:
    """True if ``value`` exposes callable ``init`` and ``call`` members."""
    return (
        isinstance(value, PipelineStage)
        and callable(getattr(value, "init", None))
        and callable(getattr(value, "call", None))
    )


# ─── Capabilities ─────────────────────────────────────────────────────────────

AllowListProvider = Union[BoundReference, Callable[[], Any]]
BlockedHandlerFunc = Union[BoundReference, Callable[[Any, Any], Any]]


@dataclass(frozen=True)
class Capabilities:
    """Explicit capability set for the ``module`` option.

    Each member is optional. Passing a Capabilities instance as ``module``
    skips discovery entirely.
    """

    allow_list_provider: Optional[AllowListProvider] = None
    blocked_handler: Optional[BlockedHandlerFunc] = None
    stage: Optional[PipelineStage] = None

    @classmethod
    def discover(cls, module: Any) -> "Capabilities":
        """Inspect ``module`` once for the recognised entry points.

        Entry points with the wrong number of parameters are not recognised.
        """
        if isinstance(module, Capabilities):
            return module
        if isinstance(module, str):
            module = import_object(module)

        provider: Optional[BoundReference] = None
        func = getattr(module, ALLOW_LIST_PROVIDER, None)
        if callable(func) and accepts_arguments(func, 0):
            provider = BoundReference(module, ALLOW_LIST_PROVIDER)

        handler: Optional[BoundReference] = None
        func = getattr(module, BLOCKED_HANDLER, None)
        if callable(func) and accepts_arguments(func, 2):
            handler = BoundReference(module, BLOCKED_HANDLER)

        stage = module if is_pipeline_stage(module) else None

        return cls(allow_list_provider=provider, blocked_handler=handler, stage=stage)

    @property
    def empty(self) -> bool:
        return (
            self.allow_list_provider is None
            and self.blocked_handler is None
            and self.stage is None
        )


def apply_capabilities(options: Mapping[str, Any]) -> dict[str, Any]:
    """Fold the capabilities of ``options["module"]`` into the options.

    Returns a new dict without the ``module`` key. Never raises for missing
    capabilities: a module that provides nothing changes nothing, and a
    missing allow source is reported later by pack().
    """
    resolved = dict(options)
    module = resolved.pop("module", None)
    if module is None:
        return resolved

    capabilities = Capabilities.discover(module)

    if capabilities.allow_list_provider is not None:
        if resolved.get("allow") is not None:
            logger.debug(
                "Module allow list provider overrides explicit allow",
                module=_display_name(module),
            )
        resolved["allow"] = capabilities.allow_list_provider

    if capabilities.blocked_handler is not None:
        resolved["on_blocked"] = capabilities.blocked_handler
    elif capabilities.stage is not None:
        resolved["on_blocked"] = capabilities.stage

    if capabilities.empty:
        logger.debug("Module exposes no access capabilities", module=_display_name(module))

    return resolved
