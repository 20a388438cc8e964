"""Options-file loading for ip_access_control.

Reads an options file and returns a raw options mapping ready for pack() or
IPAccessControlMiddleware(options=...).

Search order:
  1. ``config_path`` argument (if provided)
  2. IP_ACCESS_CONFIG environment variable (if set)
  3. ``.ip_access/config.yaml`` (working directory)
  4. ``~/.ip_access/config.yaml`` (home directory)

If no file is found the result is ``{}`` plus environment overrides: a
missing file is not an error, but pack() will still refuse to run without an
allow source. A file that exists but cannot be used raises ConfigFileError.

File format (version 1):
    version: 1
    allow: ["10.0.0.0/8", "::1"]       # list or comma-delimited string
    allow_file: /etc/myapp/allow.yaml  # alternative: hot-reloadable file
    response_code_on_blocked: 403
    response_body_on_blocked: Forbidden

Environment overrides (applied after the file):
  IP_ACCESS_ALLOW          — comma-delimited allow list (replaces allow/allow_file)
  IP_ACCESS_RESPONSE_CODE  — integer response code
  IP_ACCESS_RESPONSE_BODY  — response body
"""

from __future__ import annotations

import os
from typing import Any, Optional

import yaml

from ip_access_control.allowlist.loader import AllowListFile
from ip_access_control.errors import ConfigFileError
from ip_access_control.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".ip_access/config.yaml",
    os.path.expanduser("~/.ip_access/config.yaml"),
]

# Keys copied verbatim from the file into the options mapping
_PASSTHROUGH_KEYS = ("allow", "response_code_on_blocked", "response_body_on_blocked")


# ─── Config loading ───────────────────────────────────────────────────────────


def load_options(config_path: Optional[str] = None) -> dict[str, Any]:
    """Load access control options from the first options file found.

    ``allow_file`` in the file becomes an AllowListFile (loaded immediately)
    used as a deferred allow source. Start its watcher to hot-reload.

    Returns:
        Raw options mapping (possibly empty).

    Raises:
        ConfigFileError: YAML parse error, unreadable file, non-mapping root,
                         missing or unsupported ``version``, or an invalid
                         IP_ACCESS_RESPONSE_CODE.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("IP_ACCESS_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.info("No access control options file found", searched=search_paths)
        options: dict[str, Any] = {}
        _apply_env_overrides(options)
        return options

    logger.info("Loading access control options", path=found_path)

    try:
        with open(found_path, "rb") as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigFileError(f"Failed to parse {found_path}: {exc}", path=found_path) from exc
    except OSError as exc:
        raise ConfigFileError(f"Could not read {found_path}: {exc}", path=found_path) from exc

    if not isinstance(raw, dict):
        if raw is None:
            message = (
                f"{found_path} is missing the required 'version' field. "
                "Add 'version: 1' to the top of the file."
            )
        else:
            message = f"{found_path} must be a YAML mapping at the top level."
        raise ConfigFileError(message, path=found_path)

    version = raw.get("version")
    if version is None:
        raise ConfigFileError(
            f"{found_path} is missing the required 'version' field. "
            "Add 'version: 1' to the top of the file.",
            path=found_path,
        )
    # bool is an int subclass; "version: true" must not pass as 1.
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise ConfigFileError(
            f"Unsupported options file version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}.",
            path=found_path,
        )

    options = {key: raw[key] for key in _PASSTHROUGH_KEYS if key in raw}

    allow_file = raw.get("allow_file")
    if allow_file:
        if "allow" in options:
            logger.warning(
                "Both allow and allow_file set — allow_file wins",
                path=found_path,
            )
        source = AllowListFile(os.path.expanduser(str(allow_file)))
        # A missing file loads as an empty list (deny all); unreadable or
        # malformed content has no prior list to fall back on at startup.
        if source.load() < 0:
            raise ConfigFileError(
                f"Invalid allow_file {allow_file} referenced from {found_path}",
                path=found_path,
            )
        options["allow"] = source

    _apply_env_overrides(options)

    logger.info(
        "Access control options loaded",
        path=found_path,
        version=version,
        keys=sorted(options),
    )
    return options


def _apply_env_overrides(options: dict[str, Any]) -> None:
    """Apply IP_ACCESS_* environment overrides to ``options`` in-place.

    Raises:
        ConfigFileError: IP_ACCESS_RESPONSE_CODE is set but not an integer.
    """
    env_allow = os.environ.get("IP_ACCESS_ALLOW")
    if env_allow is not None:
        options["allow"] = env_allow

    env_code = os.environ.get("IP_ACCESS_RESPONSE_CODE")
    if env_code is not None:
        try:
            options["response_code_on_blocked"] = int(env_code)
        except ValueError:
            raise ConfigFileError(
                f"IP_ACCESS_RESPONSE_CODE environment variable is not a valid "
                f"integer: '{env_code}'"
            ) from None

    env_body = os.environ.get("IP_ACCESS_RESPONSE_BODY")
    if env_body is not None:
        options["response_body_on_blocked"] = env_body
