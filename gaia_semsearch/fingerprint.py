"""
State fingerprint: (embedding model, indexer version, config hash).

The config hash deliberately ignores the ``endpoint:`` line so moving between
networks never looks like a configuration change.
"""

import hashlib
import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models.schemas import Fingerprint
from .process_table import run_command

logger = logging.getLogger("GAIA.SemSearch.Fingerprint")

UNKNOWN_VERSION = "unknown"

_VERSION_RE = re.compile(r"\d+\.\d+\.\d+")
_ENDPOINT_LINE_RE = re.compile(r"^\s*endpoint:")
_MODEL_LINE_RE = re.compile(r"^\s+model:\s*(\S+)")


def compute_config_hash(text: str) -> str:
    """
    MD5 of the config with every endpoint line removed.

    Every kept line is newline-terminated, as ``grep -v | md5sum`` in the
    shell hook emits them, so hashes recorded by that hook stay comparable.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    kept = [line + "\n" for line in lines if not _ENDPOINT_LINE_RE.match(line)]
    return hashlib.md5("".join(kept).encode("utf-8")).hexdigest()


def _find_nested_model(node: Any, depth: int = 0) -> Optional[str]:
    if isinstance(node, dict):
        if depth > 0:
            value = node.get("model")
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                return str(value)
        for child in node.values():
            found = _find_nested_model(child, depth + 1)
            if found:
                return found
    return None


def read_model(text: str) -> str:
    """Return the embedding model named under a nested ``model:`` key."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug("Config is not valid YAML, scanning lines: %s", e)
        for line in text.splitlines():
            match = _MODEL_LINE_RE.match(line)
            if match:
                return match.group(1)
        return ""
    return _find_nested_model(data) or ""


async def indexer_version(indexer_bin: Path, timeout: float = 10.0) -> str:
    """Run ``<bin> version`` and extract the first X.Y.Z."""
    result = await run_command([str(indexer_bin), "version"], timeout=timeout)
    if result is None:
        return UNKNOWN_VERSION
    returncode, stdout, _ = result
    if returncode != 0:
        return UNKNOWN_VERSION
    match = _VERSION_RE.search(stdout)
    return match.group(0) if match else UNKNOWN_VERSION


async def compute_fingerprint(
    config_path: Path, indexer_bin: Path, timeout: float = 10.0,
) -> Fingerprint:
    """Derive the current fingerprint from the instance config and binary."""
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read indexer config %s: %s", config_path, e)
        text = ""
    return Fingerprint(
        model=read_model(text),
        indexer_version=await indexer_version(indexer_bin, timeout=timeout),
        config_hash=compute_config_hash(text),
    )
