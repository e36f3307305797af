"""
Index lifecycle manager - the full initialization sequence.

Resolve endpoint -> sync config -> fingerprint -> invalidation decision ->
purge (when invalidated) -> model availability -> supervise daemon ->
write health record.

Every step re-derives state from disk and the process table, so the
foreground path and the watchdog can run the sequence concurrently without
a lock. No outcome is fatal to the caller.
"""

import logging
import os
from typing import Optional

from .config import SemSearchConfig
from .endpoint import EndpointResolver, log_backend_instructions
from .fingerprint import compute_fingerprint
from .health_record import HealthRecordStore
from .index_store import IndexStoreController
from .instance_config import InstanceConfigSync
from .invalidation import decide
from .models.schemas import InitOutcome, StatusReport
from .process_table import ProcessLookup, ProcTableLookup
from .supervisor import ProcessSupervisor

logger = logging.getLogger("GAIA.SemSearch.Lifecycle")


class IndexLifecycleManager:
    """Wires the components together and runs one initialization attempt."""

    def __init__(
        self,
        config: SemSearchConfig,
        lookup: Optional[ProcessLookup] = None,
        resolver: Optional[EndpointResolver] = None,
    ) -> None:
        self.config = config
        self.lookup = lookup or ProcTableLookup()
        self.resolver = resolver or EndpointResolver(config)
        self.instance_config = InstanceConfigSync(config)
        self.records = HealthRecordStore(
            config.health_record_path, config.legacy_record_path,
        )
        self.index_store = IndexStoreController(config, self.lookup)
        self.supervisor = ProcessSupervisor(config, self.lookup, self.index_store)

    def indexer_installed(self) -> bool:
        path = self.config.indexer_bin
        return path.is_file() and os.access(path, os.X_OK)

    async def initialize(self, quiet: bool = False) -> InitOutcome:
        """
        Run the full sequence once.

        Args:
            quiet: Suppress informational chatter (watchdog retries).

        Returns:
            READY when the daemon is running and the record was written,
            otherwise the reason initialization was deferred or skipped.
        """
        # Step 1: backend
        if not quiet:
            logger.info("Checking Ollama on host (%s)...", self.config.default_endpoint)
        resolution = await self.resolver.resolve()
        if resolution is None:
            if not quiet:
                log_backend_instructions(self.config.default_endpoint)
            if self.instance_config.preinitialize() and not quiet:
                logger.info("Indexer config initialized (waiting for Ollama)")
            return InitOutcome.BACKEND_UNREACHABLE
        endpoint = resolution.endpoint
        logger.log(
            logging.DEBUG if quiet else logging.INFO,
            "Ollama connected: %s (%s)", endpoint, resolution.source,
        )

        # Step 2: binary
        if not self.indexer_installed():
            if not quiet:
                logger.warning("Indexer binary not found at %s", self.config.indexer_bin)
            return InitOutcome.INDEXER_MISSING

        # Step 3: config, always from template
        if not await self.instance_config.sync(endpoint, quiet=quiet):
            if not quiet:
                logger.warning(
                    "No usable indexer config at %s, skipping daemon start",
                    self.config.instance_config_path,
                )
            return InitOutcome.CONFIG_MISSING

        # Step 4: desired state
        current = await compute_fingerprint(
            self.config.instance_config_path,
            self.config.indexer_bin,
            timeout=self.config.version_timeout_seconds,
        )
        if not quiet:
            logger.info(
                "Indexer state: model=%s version=%s config=%s",
                current.model, current.indexer_version, current.config_hash,
            )

        # Step 5: invalidation
        record = self.records.read()
        legacy_model = None
        if record is None:
            if not quiet:
                logger.info("No health record found (fresh install or first run)")
            if self.records.has_legacy():
                legacy_model = self.records.read_legacy_model()
                self.records.discard_legacy()
                logger.info("Migrated from legacy model stamp")
        elif not quiet:
            logger.debug("Health record: %s", record.fingerprint)

        decision = decide(
            current, record, self.index_store.artifacts_exist(), legacy_model=legacy_model,
        )
        if decision.rebuild:
            if record is not None:
                _log_changes(record.fingerprint, current)
            logger.warning("Index rebuild required: %s", decision.describe())
            await self.index_store.purge()
            logger.info("Index cleared - will rebuild from scratch")

        # Step 6: the model must exist on the backend before the daemon starts
        if current.model:
            if await self.resolver.model_available(endpoint, current.model):
                logger.log(
                    logging.DEBUG if quiet else logging.INFO,
                    "Model %s available on Ollama", current.model,
                )
            elif quiet:
                logger.debug("Model %s not found on Ollama", current.model)
                return InitOutcome.MODEL_MISSING
            else:
                logger.warning("Model %s not found on Ollama", current.model)
                logger.info("Pull the model on your host: ollama pull %s", current.model)
                logger.warning("Skipping daemon start until model is available")
                return InitOutcome.MODEL_MISSING

        # Step 7: daemon
        pid = await self.supervisor.ensure_running(truncate_log=True)
        if pid is None:
            return InitOutcome.START_FAILED

        # Step 8: record the known-good state
        try:
            self.records.write(current, pid)
        except OSError as e:
            logger.warning("Cannot write health record %s: %s", self.records.path, e)
            return InitOutcome.RECORD_FAILED
        logger.info("Health record written (PID: %d)", pid)
        return InitOutcome.READY

    async def rebuild(self) -> InitOutcome:
        """Discard the index and record unconditionally, then initialize."""
        logger.warning("Forced index rebuild requested")
        await self.index_store.purge()
        self.records.clear()
        return await self.initialize()

    def status(self) -> StatusReport:
        return StatusReport(
            record=self.records.read(),
            daemon_pid=self.supervisor.find_daemon(),
            index_present=self.index_store.artifacts_exist(),
            lock_present=self.index_store.lock_exists(),
            instance_config_present=self.config.instance_config_path.is_file(),
        )


def _log_changes(previous, current) -> None:
    if current.model and previous.model != current.model:
        logger.warning("Model changed: %s -> %s", previous.model or "unknown", current.model)
    if previous.indexer_version != current.indexer_version:
        logger.warning(
            "Indexer version changed: %s -> %s",
            previous.indexer_version, current.indexer_version,
        )
    if previous.config_hash != current.config_hash:
        logger.warning("Config changed: %s -> %s", previous.config_hash, current.config_hash)
