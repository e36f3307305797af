"""Pydantic models for index lifecycle state."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


# ── Enums ────────────────────────────────────────────────────────────


class RebuildReason(str, Enum):
    """Why the on-disk index was invalidated."""

    MODEL_CHANGE = "model_change"
    VERSION_CHANGE = "version_change"
    CONFIG_CHANGE = "config_change"
    LEGACY_MODEL_CHANGE = "legacy_model_change"
    MISSING_STAMP = "missing_stamp"


class InitOutcome(str, Enum):
    """Result of one initialization attempt. None of these are fatal."""

    READY = "ready"
    BACKEND_UNREACHABLE = "backend_unreachable"
    INDEXER_MISSING = "indexer_missing"
    CONFIG_MISSING = "config_missing"
    MODEL_MISSING = "model_missing"
    START_FAILED = "start_failed"
    RECORD_FAILED = "record_failed"


# ── Value objects ────────────────────────────────────────────────────


class EndpointResolution(BaseModel):
    """A backend endpoint that answered its liveness probe."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., description="host:port of the backend")
    source: str = Field(..., description="'override' or 'default'")


class Fingerprint(BaseModel):
    """Desired index state: (model, indexer version, config hash)."""

    model_config = ConfigDict(frozen=True)

    model: str = ""
    indexer_version: str
    config_hash: str


class InvalidationDecision(BaseModel):
    """Outcome of comparing the current fingerprint to the health record."""

    rebuild: bool = False
    reasons: List[RebuildReason] = Field(default_factory=list)

    def describe(self) -> str:
        return " ".join(r.value for r in self.reasons)


# ── Persisted record ─────────────────────────────────────────────────

# Older stamps wrote the binary version under GREPAI_VERSION.
_KEY_ALIASES = {"GREPAI_VERSION": "INDEXER_VERSION"}

_REQUIRED_KEYS = ("MODEL", "INDEXER_VERSION", "CONFIG_HASH", "DAEMON_PID", "LAST_HEALTHY")


class HealthRecord(BaseModel):
    """Last known-good fingerprint plus daemon PID and timestamp."""

    model: str = ""
    indexer_version: str = Field(..., min_length=1)
    config_hash: str = Field(..., min_length=1)
    daemon_pid: int = Field(..., gt=0)
    last_healthy: int = Field(..., ge=0, description="Unix seconds")

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(
            model=self.model,
            indexer_version=self.indexer_version,
            config_hash=self.config_hash,
        )

    def to_text(self) -> str:
        lines = [
            f"MODEL={self.model}",
            f"INDEXER_VERSION={self.indexer_version}",
            f"CONFIG_HASH={self.config_hash}",
            f"DAEMON_PID={self.daemon_pid}",
            f"LAST_HEALTHY={self.last_healthy}",
        ]
        return "\n".join(lines) + "\n"

    @classmethod
    def from_text(cls, text: str) -> Optional["HealthRecord"]:
        """Parse key=value lines; None if any required field is unusable."""
        values: Dict[str, str] = {}
        for line in text.splitlines():
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = _KEY_ALIASES.get(key.strip(), key.strip())
            values.setdefault(key, value.strip())

        if any(k not in values for k in _REQUIRED_KEYS):
            return None
        try:
            return cls(
                model=values["MODEL"],
                indexer_version=values["INDEXER_VERSION"],
                config_hash=values["CONFIG_HASH"],
                daemon_pid=values["DAEMON_PID"],
                last_healthy=values["LAST_HEALTHY"],
            )
        except ValidationError:
            return None


# ── Reports ──────────────────────────────────────────────────────────


class StatusReport(BaseModel):
    """Snapshot for the ``status`` command."""

    record: Optional[HealthRecord] = None
    daemon_pid: Optional[int] = None
    index_present: bool = False
    lock_present: bool = False
    instance_config_present: bool = False
