"""Root test configuration for ip_access_control.

Clears the IP_ACCESS_* environment overrides for the entire test suite so
that a developer's shell configuration never leaks into load_options().

Tests that exercise the overrides (test_options_file.py) set them again with
their own monkeypatch calls.
"""

import pytest

_ENV_OVERRIDES = (
    "IP_ACCESS_CONFIG",
    "IP_ACCESS_ALLOW",
    "IP_ACCESS_RESPONSE_CODE",
    "IP_ACCESS_RESPONSE_BODY",
)


@pytest.fixture(autouse=True)
def clear_access_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every IP_ACCESS_* override for the duration of a test."""
    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
