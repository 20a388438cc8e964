"""Allow-list file provider.

Public API:
    AllowListFile — YAML-backed, hot-reloadable zero-argument allow source
"""
from ip_access_control.allowlist.loader import AllowListFile

__all__ = ["AllowListFile"]
