"""
Logging setup for GAIA SemSearch.

Same conventions as the other GAIA services: UTC ISO timestamps, the service
name in every line, console output plus an optional rotating file that
doubles as the watchdog diagnostic log.

Usage:
    from gaia_semsearch.logging_setup import setup_logging

    setup_logging(log_file="/tmp/grepai-init.log", level=logging.INFO)
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

SERVICE_NAME = "gaia-semsearch"


class UTCFormatter(logging.Formatter):
    """Custom formatter that uses UTC timestamps in ISO format."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat()


def setup_logging(
    log_file: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    handlers: Optional[List[logging.Handler]] = None,
    service_name: str = SERVICE_NAME,
    max_log_bytes: int = 5 * 1024 * 1024,
    log_backup_count: int = 2,
) -> None:
    """
    Configure root logging.

    Args:
        log_file: Diagnostic log file. If None, only console logging is used.
        level: Logging level (default: INFO)
        handlers: Additional handlers to add
        service_name: Name shown in every line
        max_log_bytes: Max size of the log file before rotation
        log_backup_count: Number of rotated files to keep
    """
    root = logging.getLogger()
    root.setLevel(level)

    formatter = UTCFormatter(f"%(asctime)s [{service_name}] %(levelname)s:%(name)s:%(message)s")

    # Remove existing handlers to avoid double-logging
    for h in list(root.handlers):
        root.removeHandler(h)

    stream_h = logging.StreamHandler()
    stream_h.setFormatter(formatter)
    stream_h.setLevel(level)
    root.addHandler(stream_h)

    if log_file:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_h = logging.handlers.RotatingFileHandler(
                path,
                maxBytes=max_log_bytes,
                backupCount=log_backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            root.warning("Cannot open log file %s, console only: %s", path, e)
        else:
            file_h.setFormatter(formatter)
            file_h.setLevel(level)
            root.addHandler(file_h)

    if handlers:
        for h in handlers:
            h.setFormatter(formatter)
            root.addHandler(h)


__all__ = [
    "setup_logging",
    "UTCFormatter",
    "SERVICE_NAME",
]
