"""
Watchdog for the indexer daemon.

Background asyncio task that runs for the life of the container. Each cycle
re-derives its state from disk and the process table:

  no health record  - deferred initialization: once the backend answers,
                      run the full sequence again
  record present    - restart the daemon if it died, then refresh only the
                      record's PID

The deferred-attempt counter and the outage flag are owned by the loop; no
fingerprint or PID is cached between cycles.
"""

import asyncio
import logging
import os
from typing import Optional

from .lifecycle import IndexLifecycleManager
from .models.schemas import InitOutcome

logger = logging.getLogger("GAIA.SemSearch.Watchdog")


class IndexWatchdog:
    """Keeps the daemon alive and retries initialization after late backends."""

    def __init__(self, manager: IndexLifecycleManager) -> None:
        self.manager = manager
        self.config = manager.config
        self._task: Optional[asyncio.Task] = None

        self._deferred_attempts = 0
        self._outage_warned = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the watchdog background task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self.run_forever(), name="semsearch-watchdog")
        logger.info(
            "Index watchdog started (delay=%ss, interval=%ss)",
            self.config.watchdog_initial_delay_seconds,
            self.config.watchdog_interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the watchdog background task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Index watchdog stopped")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Main loop - runs until cancelled."""
        self._write_pid_file()
        try:
            # Let the container finish starting before the first check
            await asyncio.sleep(self.config.watchdog_initial_delay_seconds)
            while True:
                await asyncio.sleep(self.config.watchdog_interval_seconds)
                try:
                    action = await self.run_cycle()
                    logger.debug("Watchdog cycle: %s", action)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.error("Error in watchdog cycle", exc_info=True)
        finally:
            self._remove_pid_file()

    async def run_cycle(self) -> str:
        """Evaluate once and return a label describing what was done."""
        if self.manager.records.read() is None:
            return await self._deferred_init()

        self._deferred_attempts = 0
        return await self._check_daemon()

    async def _deferred_init(self) -> str:
        if await self.manager.resolver.resolve() is None:
            return "backend_unavailable"

        self._deferred_attempts += 1
        attempt = self._deferred_attempts
        if attempt == 1:
            logger.info("Ollama now available - initializing semantic search")

        outcome = await self.manager.initialize(quiet=True)
        if outcome is InitOutcome.READY:
            logger.info("Deferred initialization complete")
            self._deferred_attempts = 0
            return "deferred_init"

        # quiet initialize() leaves reporting to this throttled line
        if attempt == 1 or attempt % self.config.deferred_log_every == 0:
            logger.warning("Deferred init retry #%d not complete: %s", attempt, outcome.value)
        return "deferred_failed"

    async def _check_daemon(self) -> str:
        supervisor = self.manager.supervisor
        if supervisor.find_daemon() is not None:
            self._outage_warned = False
            return "healthy"

        # Restarting into a dead backend is pointless
        if await self.manager.resolver.resolve() is None:
            if not self._outage_warned:
                logger.warning("Indexer daemon not running and Ollama not reachable, skipping restart")
                self._outage_warned = True
            return "restart_skipped"
        self._outage_warned = False

        logger.warning("Indexer daemon not running - restarting...")
        pid = await supervisor.ensure_running(
            truncate_log=False, timeout=self.config.restart_settle_seconds,
        )
        if pid is None:
            logger.warning("Failed to restart daemon (check %s)", self.config.daemon_log)
            return "restart_failed"

        logger.info("Daemon restarted (PID: %d)", pid)
        self.manager.records.update_pid(pid)
        return "restarted"

    # ------------------------------------------------------------------
    # PID file
    # ------------------------------------------------------------------

    def _write_pid_file(self) -> None:
        path = self.config.watchdog_pid_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"{os.getpid()}\n")
        except OSError as e:
            logger.warning("Cannot write watchdog PID file %s: %s", path, e)

    def _remove_pid_file(self) -> None:
        try:
            self.config.watchdog_pid_file.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Cannot remove watchdog PID file: %s", e)
