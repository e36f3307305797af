"""
Health record persistence.

The record lives next to the index as plain ``KEY=value`` lines. A missing
or unparsable record is reported as ``None``; callers treat both the same.
"""

import logging
import os
import time
from pathlib import Path
from typing import Optional

from .models.schemas import Fingerprint, HealthRecord

logger = logging.getLogger("GAIA.SemSearch.HealthRecord")

RECORD_MODE = 0o600


class HealthRecordStore:
    """Reads and writes the health record and its legacy predecessor."""

    def __init__(self, path: Path, legacy_path: Optional[Path] = None) -> None:
        self.path = path
        self.legacy_path = legacy_path

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[HealthRecord]:
        """Load the record; None when absent or any field is unusable."""
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read health record %s: %s", self.path, e)
            return None

        record = HealthRecord.from_text(text)
        if record is None:
            logger.debug("Health record %s is incomplete, treating as absent", self.path)
        return record

    def write(self, fingerprint: Fingerprint, daemon_pid: int) -> HealthRecord:
        """Persist a fresh record stamped with the current time."""
        record = HealthRecord(
            model=fingerprint.model,
            indexer_version=fingerprint.indexer_version,
            config_hash=fingerprint.config_hash,
            daemon_pid=daemon_pid,
            last_healthy=int(time.time()),
        )
        self._write_atomic(record.to_text())
        return record

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def update_pid(self, daemon_pid: int) -> bool:
        """Replace only the daemon PID (and timestamp) of an existing record."""
        record = self.read()
        if record is None:
            return False
        self.write(record.fingerprint, daemon_pid)
        return True

    def _write_atomic(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, RECORD_MODE)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.chmod(temp_file, RECORD_MODE)
        temp_file.rename(self.path)
        logger.debug("Health record saved to %s", self.path)

    # ------------------------------------------------------------------
    # Legacy single-field stamp (model name only)
    # ------------------------------------------------------------------

    def read_legacy_model(self) -> Optional[str]:
        if self.legacy_path is None:
            return None
        try:
            model = self.legacy_path.read_text().strip()
        except OSError:
            return None
        return model or None

    def has_legacy(self) -> bool:
        return self.legacy_path is not None and self.legacy_path.is_file()

    def discard_legacy(self) -> None:
        if self.legacy_path is not None:
            self.legacy_path.unlink(missing_ok=True)
