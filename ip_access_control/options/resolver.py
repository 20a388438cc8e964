"""Two-phase option handling: pack() once at setup, unpack() once per request.

pack() normalizes raw keyword options into a Configuration:

  allow
    - bound reference (module capability or BoundReference) -> BoundAllow
    - zero-argument callable                                -> DeferredAllow
    - anything else (list, comma-delimited string, BlockSet) -> parsed NOW
                                                              -> StaticAllow
  on_blocked
    - absent                        -> DefaultBlockedHandler
    - bound reference / callable    -> CallableBlockedHandler
    - pipeline stage (init + call)  -> StageBlockedHandler
  response_code_on_blocked / response_body_on_blocked
    - explicit value or default (401 / "Not Authenticated")

unpack() turns a Configuration into a ResolvedConfiguration. Static allow
lists pass through untouched; deferred and bound sources are invoked and
parsed on every call, so each request sees the provider's current data.
Nothing is memoized across calls.

Configuration and ResolvedConfiguration are frozen and safe to share between
concurrent requests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ip_access_control.address.blocks import BlockSet
from ip_access_control.errors import InvalidOptionError, MissingAllowConfigurationError
from ip_access_control.options.capabilities import (
    BoundReference,
    PipelineStage,
    accepts_arguments,
    apply_capabilities,
    import_object,
    is_pipeline_stage,
)
from ip_access_control.responses import ip_access_on_blocked
from ip_access_control.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)

# ─── Defaults ─────────────────────────────────────────────────────────────────

DEFAULT_RESPONSE_CODE_ON_BLOCKED: int = 401
DEFAULT_RESPONSE_BODY_ON_BLOCKED: str = "Not Authenticated"

RECOGNIZED_OPTIONS: frozenset[str] = frozenset({
    "module",
    "allow",
    "on_blocked",
    "response_code_on_blocked",
    "response_body_on_blocked",
})


# ─── Allow sources ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StaticAllow:
    """Allow list parsed at pack time."""

    blocks: BlockSet


@dataclass(frozen=True)
class DeferredAllow:
    """Zero-argument callable invoked on every unpack()."""

    provider: Callable[[], Any]
    optimize: bool = False

    def fetch(self) -> Any:
        return self.provider()


@dataclass(frozen=True)
class BoundAllow:
    """Named zero-argument function on a module, invoked on every unpack()."""

    reference: BoundReference
    function: Callable[[], Any] = field(compare=False, repr=False)
    optimize: bool = False

    def fetch(self) -> Any:
        return self.function()


AllowSource = Union[StaticAllow, DeferredAllow, BoundAllow]


# ─── Blocked handlers ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DefaultBlockedHandler:
    """Sends response_code_on_blocked / response_body_on_blocked."""

    def __call__(self, request: Any, options: "ResolvedConfiguration") -> Any:
        return ip_access_on_blocked(request, options)


DEFAULT_ON_BLOCKED = DefaultBlockedHandler()


@dataclass(frozen=True)
class CallableBlockedHandler:
    """A ``(request, options) -> response`` function."""

    func: Callable[[Any, Any], Any]
    reference: Optional[BoundReference] = field(default=None, compare=False)

    def __call__(self, request: Any, options: "ResolvedConfiguration") -> Any:
        return self.func(request, options)


@dataclass(frozen=True)
class StageBlockedHandler:
    """Adapts a pipeline stage to the handler signature: ``call(request, init(options))``."""

    stage: PipelineStage

    def __call__(self, request: Any, options: "ResolvedConfiguration") -> Any:
        return self.stage.call(request, self.stage.init(options))


BlockedHandler = Union[DefaultBlockedHandler, CallableBlockedHandler, StageBlockedHandler]


# ─── Configuration ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Configuration:
    """Packed options, built once at setup by pack()."""

    allow: AllowSource
    on_blocked: BlockedHandler = DEFAULT_ON_BLOCKED
    response_code_on_blocked: int = DEFAULT_RESPONSE_CODE_ON_BLOCKED
    response_body_on_blocked: str = DEFAULT_RESPONSE_BODY_ON_BLOCKED

    @property
    def is_dynamic(self) -> bool:
        """True if unpack() has to call a provider for the allow list."""
        return not isinstance(self.allow, StaticAllow)


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Options for a single decision: the allow list is a concrete BlockSet."""

    allow: BlockSet
    on_blocked: BlockedHandler = DEFAULT_ON_BLOCKED
    response_code_on_blocked: int = DEFAULT_RESPONSE_CODE_ON_BLOCKED
    response_body_on_blocked: str = DEFAULT_RESPONSE_BODY_ON_BLOCKED


def default(option: str) -> Any:
    """Return the default value of ``on_blocked`` or a response option.

    Raises:
        KeyError: ``option`` has no default (``allow`` is required).
    """
    defaults = {
        "on_blocked": DEFAULT_ON_BLOCKED,
        "response_code_on_blocked": DEFAULT_RESPONSE_CODE_ON_BLOCKED,
        "response_body_on_blocked": DEFAULT_RESPONSE_BODY_ON_BLOCKED,
    }
    return defaults[option]


# ─── pack ─────────────────────────────────────────────────────────────────────


def pack(
    options: Optional[Mapping[str, Any]] = None,
    *,
    optimize: bool = False,
    **kwargs: Any,
) -> Configuration:
    """Normalize raw options into a Configuration. Call once, at setup.

    Options may be given as a mapping, as keyword arguments, or both
    (keywords win). Unknown keys are ignored.

    Static allow data is parsed here, so malformed literals fail setup
    instead of the first request. With ``optimize=True`` the parsed allow
    list (static now, dynamic on every unpack) is passed through
    BlockSet.optimize(); the default keeps entries exactly as configured.

    Raises:
        MissingAllowConfigurationError: no ``allow`` and no module provider.
        InvalidCidrError / InvalidAddressError: malformed static allow data.
        InvalidOptionError: unusable ``allow`` / ``on_blocked`` / ``module``.
    """
    raw: dict[str, Any] = dict(options or {})
    raw.update(kwargs)

    unknown = sorted(key for key in raw if key not in RECOGNIZED_OPTIONS)
    if unknown:
        logger.debug("Ignoring unknown access control options", options=unknown)

    raw = apply_capabilities(raw)

    configuration = Configuration(
        allow=_pack_allow(raw.get("allow"), optimize),
        on_blocked=_pack_on_blocked(raw.get("on_blocked")),
        response_code_on_blocked=_value_or_default(raw, "response_code_on_blocked"),
        response_body_on_blocked=_value_or_default(raw, "response_body_on_blocked"),
    )

    logger.debug(
        "Access control options packed",
        allow_source=type(configuration.allow).__name__,
        on_blocked=type(configuration.on_blocked).__name__,
        response_code_on_blocked=configuration.response_code_on_blocked,
    )
    return configuration


def _value_or_default(raw: Mapping[str, Any], option: str) -> Any:
    value = raw.get(option)
    return default(option) if value is None else value


def _pack_allow(value: Any, optimize: bool) -> AllowSource:
    if value is None:
        raise MissingAllowConfigurationError()

    reference = BoundReference.coerce(value)
    if reference is not None:
        return BoundAllow(reference, reference.resolve(0), optimize)

    if isinstance(value, (StaticAllow, DeferredAllow, BoundAllow)):
        return value

    if isinstance(value, BlockSet):
        blocks = value
    elif callable(value):
        if not accepts_arguments(value, 0):
            raise InvalidOptionError("allow function must take no arguments")
        return DeferredAllow(value, optimize)
    else:
        blocks = BlockSet.of(value)

    return StaticAllow(blocks.optimize() if optimize else blocks)


def _pack_on_blocked(value: Any) -> BlockedHandler:
    if value is None:
        return DEFAULT_ON_BLOCKED

    if isinstance(value, (DefaultBlockedHandler, CallableBlockedHandler, StageBlockedHandler)):
        return value

    if isinstance(value, str):
        value = import_object(value)

    reference = BoundReference.coerce(value)
    if reference is not None:
        return CallableBlockedHandler(reference.resolve(2), reference)

    if is_pipeline_stage(value):
        return StageBlockedHandler(value)

    if callable(value):
        if not accepts_arguments(value, 2):
            raise InvalidOptionError("on_blocked function must take (request, options)")
        return CallableBlockedHandler(value)

    raise InvalidOptionError(
        f"on_blocked must be a function, a bound reference or a pipeline stage, "
        f"not {type(value).__name__}"
    )


# ─── unpack ───────────────────────────────────────────────────────────────────


def unpack(configuration: Configuration) -> ResolvedConfiguration:
    """Resolve a Configuration for one decision.

    Deferred and bound allow sources are called exactly once here. Errors
    from the provider, and InvalidCidrError / InvalidAddressError for the data
    it returns, propagate to the caller.
    """
    return ResolvedConfiguration(
        allow=_unpack_allow(configuration.allow),
        on_blocked=configuration.on_blocked,
        response_code_on_blocked=configuration.response_code_on_blocked,
        response_body_on_blocked=configuration.response_body_on_blocked,
    )


def _unpack_allow(source: AllowSource) -> BlockSet:
    if isinstance(source, StaticAllow):
        return source.blocks

    with PerformanceLogger("Allow list resolution", logger):
        blocks = BlockSet.of(source.fetch())
    return blocks.optimize() if source.optimize else blocks
