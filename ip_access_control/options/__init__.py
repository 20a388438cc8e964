"""Option handling: capability discovery plus the pack/unpack protocol.

Public API:
    pack, unpack, default          — setup-time / per-request resolution
    Configuration, ResolvedConfiguration
    StaticAllow, DeferredAllow, BoundAllow — allow sources
    DefaultBlockedHandler, CallableBlockedHandler, StageBlockedHandler
    BoundReference, Capabilities, PipelineStage, apply_capabilities
"""
from ip_access_control.options.capabilities import (
    ALLOW_LIST_PROVIDER,
    BLOCKED_HANDLER,
    BoundReference,
    Capabilities,
    PipelineStage,
    apply_capabilities,
)
from ip_access_control.options.resolver import (
    DEFAULT_ON_BLOCKED,
    DEFAULT_RESPONSE_BODY_ON_BLOCKED,
    DEFAULT_RESPONSE_CODE_ON_BLOCKED,
    BoundAllow,
    CallableBlockedHandler,
    Configuration,
    DefaultBlockedHandler,
    DeferredAllow,
    ResolvedConfiguration,
    StageBlockedHandler,
    StaticAllow,
    default,
    pack,
    unpack,
)

__all__ = [
    "ALLOW_LIST_PROVIDER",
    "BLOCKED_HANDLER",
    "BoundReference",
    "Capabilities",
    "PipelineStage",
    "apply_capabilities",
    "DEFAULT_ON_BLOCKED",
    "DEFAULT_RESPONSE_BODY_ON_BLOCKED",
    "DEFAULT_RESPONSE_CODE_ON_BLOCKED",
    "BoundAllow",
    "CallableBlockedHandler",
    "Configuration",
    "DefaultBlockedHandler",
    "DeferredAllow",
    "ResolvedConfiguration",
    "StageBlockedHandler",
    "StaticAllow",
    "default",
    "pack",
    "unpack",
]
