"""
Index store control: stop the daemon and delete index artifacts.

Only used on invalidation and for stale-lock cleanup. Every operation is
idempotent; running it with no daemon and no artifacts is a no-op.
"""

import asyncio
import logging
import os
import signal

from .config import SemSearchConfig
from .process_table import ProcessLookup, reap_children

logger = logging.getLogger("GAIA.SemSearch.IndexStore")


class IndexStoreController:
    """Owns destructive operations on the index directory."""

    def __init__(self, config: SemSearchConfig, lookup: ProcessLookup) -> None:
        self.config = config
        self.lookup = lookup

    @property
    def artifact_paths(self):
        return [self.config.index_file, self.config.symbols_file, self.config.lock_file]

    def artifacts_exist(self) -> bool:
        return self.config.index_file.is_file()

    def lock_exists(self) -> bool:
        return self.config.lock_file.exists()

    async def stop_daemon(self) -> None:
        """SIGTERM the daemon, escalate to SIGKILL after the grace period."""
        pid = self.lookup.find(self.config.daemon_signature)
        if pid is None:
            return

        logger.info("Stopping indexer daemon (PID: %d)...", pid)
        if not _send(pid, signal.SIGTERM):
            return
        await asyncio.sleep(self.config.stop_grace_seconds)
        reap_children()

        if self.lookup.is_alive(pid):
            logger.warning("Daemon %d ignored SIGTERM, sending SIGKILL", pid)
            _send(pid, signal.SIGKILL)
            await asyncio.sleep(self.config.stop_kill_wait_seconds)
            reap_children()

    async def purge(self) -> None:
        """Stop the daemon and remove index, symbols and lock files."""
        await self.stop_daemon()
        for path in self.artifact_paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove %s: %s", path, e)

    def clear_stale_lock(self) -> bool:
        """Remove the lock file, but only when no daemon can own it."""
        if self.lookup.find(self.config.daemon_signature) is not None:
            return False
        lock = self.config.lock_file
        if not lock.exists():
            return False
        try:
            lock.unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed stale index lock %s", lock)
        return True


def _send(pid: int, sig: int) -> bool:
    try:
        os.kill(pid, sig)
    except ProcessLookupError:
        return False
    except PermissionError as e:
        logger.warning("Cannot signal PID %d: %s", pid, e)
        return False
    return True
