"""Invalidation decision: does the on-disk index still match the desired state?"""

from typing import Optional

from .models.schemas import Fingerprint, HealthRecord, InvalidationDecision, RebuildReason


def decide(
    current: Fingerprint,
    record: Optional[HealthRecord],
    index_exists: bool,
    legacy_model: Optional[str] = None,
) -> InvalidationDecision:
    """
    Compare the current fingerprint against the last known-good record.

    Args:
        current: Freshly computed fingerprint.
        record: Parsed health record, or None when absent/unparsable.
        index_exists: Whether index artifacts are on disk.
        legacy_model: Model from the legacy single-field stamp, consulted
            only when there is no health record.

    Returns:
        The decision with every reason that applies.
    """
    reasons = []

    if record is not None:
        # An unknown current model cannot prove a model change.
        if current.model and record.model != current.model:
            reasons.append(RebuildReason.MODEL_CHANGE)
        if record.indexer_version != current.indexer_version:
            reasons.append(RebuildReason.VERSION_CHANGE)
        if record.config_hash != current.config_hash:
            reasons.append(RebuildReason.CONFIG_CHANGE)
    else:
        if legacy_model and legacy_model != current.model:
            reasons.append(RebuildReason.LEGACY_MODEL_CHANGE)
        elif index_exists:
            # No proof the index matches current settings.
            reasons.append(RebuildReason.MISSING_STAMP)

    return InvalidationDecision(rebuild=bool(reasons), reasons=reasons)
