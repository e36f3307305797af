"""Pydantic models for index lifecycle state."""

from .schemas import (
    EndpointResolution,
    Fingerprint,
    HealthRecord,
    InitOutcome,
    InvalidationDecision,
    RebuildReason,
    StatusReport,
)

__all__ = [
    "EndpointResolution",
    "Fingerprint",
    "HealthRecord",
    "InitOutcome",
    "InvalidationDecision",
    "RebuildReason",
    "StatusReport",
]
