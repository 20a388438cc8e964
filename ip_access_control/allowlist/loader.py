"""Allow-list file provider with watchfiles hot-reload.

An AllowListFile holds the BlockSet parsed from a YAML file and is itself a
zero-argument callable returning the current BlockSet, so it can be used
directly as a deferred ``allow`` source:

    allow_file = AllowListFile("/etc/myapp/allow.yaml")
    allow_file.load()
    app.add_middleware(IPAccessControlMiddleware, allow=allow_file)
    asyncio.create_task(allow_file.start_watcher())

Accepted YAML shapes:
  1. Top-level list:           ["10.0.0.0/8", "::1"]
  2. Comma-delimited string:   "10.0.0.0/8, ::1"
  3. Mapping with allow key:   {version: 1, allow: [...]}

A file is applied all-or-nothing: if any entry is invalid the previous list
stays in effect and the error is logged. An invalid file therefore never
reaches a request as malformed data.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Optional

import yaml

from ip_access_control.address.blocks import EMPTY_BLOCK_SET, BlockSet
from ip_access_control.errors import IPAccessControlError
from ip_access_control.utils.logger import get_logger

logger = get_logger(__name__)


class AllowListFile:
    """Thread-safe, hot-reloadable allow list backed by a YAML file.

    Thread-safety:
        __call__() and blocks read under a threading.Lock; load() swaps the
        BlockSet under the same lock. The middleware calls deferred sources
        from the threadpool, so reads and reloads may run concurrently.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._blocks: BlockSet = EMPTY_BLOCK_SET
        self._lock = threading.Lock()

    # ── Public read API ───────────────────────────────────────────────────────

    @property
    def blocks(self) -> BlockSet:
        """The BlockSet currently in effect (immutable snapshot)."""
        with self._lock:
            return self._blocks

    def __call__(self) -> BlockSet:
        return self.blocks

    # ── Load from file ────────────────────────────────────────────────────────

    def load(self) -> int:
        """(Re)load the allow list from ``self.path``.

        Returns the number of blocks loaded (>= 0).
        Returns 0 if the file does not exist (empty allow list: deny all).
        Returns -1 on read, YAML or address errors (prior list unchanged).

        Never raises.
        """
        try:
            with open(self.path, "rb") as fh:
                raw = yaml.safe_load(fh)
        except FileNotFoundError:
            logger.warning("Allow list file not found — denying all", path=self.path)
            with self._lock:
                self._blocks = EMPTY_BLOCK_SET
            return 0
        except yaml.YAMLError as exc:
            logger.error(
                "Allow list reload failed: YAML parse error — keeping prior list",
                path=self.path,
                error=str(exc),
            )
            return -1
        except OSError as exc:
            logger.error(
                "Allow list reload failed: could not read file — keeping prior list",
                path=self.path,
                error=str(exc),
            )
            return -1

        try:
            blocks = _parse_allow_file(raw)
        except IPAccessControlError as exc:
            logger.error(
                "Allow list reload failed: invalid entry — keeping prior list",
                path=self.path,
                error=exc.message,
            )
            return -1

        with self._lock:
            self._blocks = blocks
        logger.debug("Allow list loaded", count=len(blocks), path=self.path)
        return len(blocks)

    # ── Hot-reload watcher ────────────────────────────────────────────────────

    async def start_watcher(self) -> None:
        """Reload the file whenever it changes. Run as an asyncio task.

        Cancel the task to stop watching. A failed reload keeps the prior
        list and the watcher keeps running.
        """
        import watchfiles

        logger.info("Allow list watcher started", path=self.path)
        try:
            async for _ in watchfiles.awatch(self.path):
                count = self.load()
                if count >= 0:
                    logger.info("Allow list hot-reloaded", count=count, path=self.path)
        except asyncio.CancelledError:
            logger.debug("Allow list watcher cancelled", path=self.path)
            raise


# ─── Parsing helpers ──────────────────────────────────────────────────────────


def _parse_allow_file(raw: object) -> BlockSet:
    """Parse the YAML document of an allow-list file into a BlockSet.

    Raises:
        InvalidCidrError: an entry is not a valid address or CIDR block.
    """
    if raw is None:
        return EMPTY_BLOCK_SET

    if isinstance(raw, dict):
        entries = raw.get("allow")
        if entries is None:
            return EMPTY_BLOCK_SET
        return BlockSet.of(entries)

    return BlockSet.of(raw)
