"""Exceptions raised by ip_access_control.

Setup-time errors (bad allow-list literals, missing ``allow``, unusable
``on_blocked``, broken config files) are fatal and propagate to the caller.
Request-time address problems never raise: the decision engine resolves them
to "not allowed".
"""

from __future__ import annotations


class IPAccessControlError(Exception):
    """Base class for all ip_access_control errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAddressError(IPAccessControlError, ValueError):
    """Raised when a value is not a valid IPv4 or IPv6 address."""

    def __init__(self, value: object, reason: str = "not a valid IPv4 or IPv6 address") -> None:
        super().__init__(f"Invalid address {value!r}: {reason}")
        self.value = value


class InvalidCidrError(IPAccessControlError, ValueError):
    """Raised when a value is not a valid address or ``address/prefix`` block."""

    def __init__(self, value: object, reason: str = "not a valid CIDR block") -> None:
        super().__init__(f"Invalid CIDR {value!r}: {reason}")
        self.value = value


class MissingAllowConfigurationError(IPAccessControlError, KeyError):
    """Raised by pack() when neither ``allow`` nor a module provider is given."""

    def __init__(
        self,
        message: str = (
            "No allow list configured. Provide `allow` or a `module` "
            "exposing ip_access_allow_list()."
        ),
    ) -> None:
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return self.message


class InvalidOptionError(IPAccessControlError, TypeError):
    """Raised by pack() when an option has a type it cannot use."""


class ConfigFileError(IPAccessControlError):
    """Raised when an options file exists but cannot be used."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
