"""
Process supervision for the indexer ``watch`` daemon.

Starts the daemon when it is absent and confirms startup by polling the
process table for a bounded window. Never blocks longer than that window.
"""

import asyncio
import logging
import subprocess
from typing import Optional

from .config import SemSearchConfig
from .index_store import IndexStoreController
from .process_table import ProcessLookup, reap_children

logger = logging.getLogger("GAIA.SemSearch.Supervisor")


class ProcessSupervisor:
    """Launches and locates the supervised daemon."""

    def __init__(
        self,
        config: SemSearchConfig,
        lookup: ProcessLookup,
        index_store: IndexStoreController,
    ) -> None:
        self.config = config
        self.lookup = lookup
        self.index_store = index_store

    def find_daemon(self) -> Optional[int]:
        reap_children()
        return self.lookup.find(self.config.daemon_signature)

    def launch(self, truncate_log: bool = True) -> bool:
        """Spawn ``<indexer> watch`` detached, output to the daemon log."""
        log_path = self.config.daemon_log
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(log_path, "w" if truncate_log else "a") as log_file:
                subprocess.Popen(
                    [str(self.config.indexer_bin), "watch"],
                    cwd=self.config.workspace_dir,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as e:
            logger.warning("Failed to launch indexer daemon: %s", e)
            return False
        return True

    async def wait_for_daemon(self, timeout: float) -> Optional[int]:
        """Poll the process table until the daemon shows up or time runs out."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            pid = self.find_daemon()
            if pid is not None:
                return pid
            if loop.time() >= deadline:
                return None
            await asyncio.sleep(self.config.start_poll_interval_seconds)

    async def ensure_running(
        self, truncate_log: bool = True, timeout: Optional[float] = None,
    ) -> Optional[int]:
        """
        Return the daemon PID, starting it first if needed.

        Args:
            truncate_log: Start a fresh daemon log (foreground path) instead
                of appending (watchdog restarts).
            timeout: Confirmation window; defaults to the configured one.

        Returns:
            PID of the running daemon, or None if it did not come up.
        """
        pid = self.find_daemon()
        if pid is not None:
            logger.info("Indexer daemon already running (PID: %d)", pid)
            return pid

        # No owning process, so any lock left behind is stale
        self.index_store.clear_stale_lock()

        logger.info("Starting indexer watch daemon...")
        if not self.launch(truncate_log=truncate_log):
            return None

        if timeout is None:
            timeout = self.config.start_confirm_timeout_seconds
        pid = await self.wait_for_daemon(timeout)
        if pid is None:
            logger.warning(
                "Indexer daemon failed to start (check %s)", self.config.daemon_log,
            )
            return None

        logger.info("Indexer watch daemon started (PID: %d)", pid)
        return pid
