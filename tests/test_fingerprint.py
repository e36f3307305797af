"""Tests for fingerprint derivation."""

import hashlib
from unittest.mock import AsyncMock, patch

import pytest

from conftest import TEMPLATE, write_indexer

from gaia_semsearch.fingerprint import (
    UNKNOWN_VERSION,
    compute_config_hash,
    compute_fingerprint,
    indexer_version,
    read_model,
)
from gaia_semsearch.instance_config import substitute_endpoint


def test_config_hash_ignores_endpoint():
    moved = substitute_endpoint(TEMPLATE, "10.8.0.1:11434")
    assert moved != TEMPLATE
    assert compute_config_hash(moved) == compute_config_hash(TEMPLATE)


def test_config_hash_changes_with_any_other_field():
    base = compute_config_hash(TEMPLATE)
    variants = [
        TEMPLATE.replace("size: 512", "size: 1024"),
        TEMPLATE.replace("nomic-embed-text", "mxbai-embed-large"),
        TEMPLATE.replace("  - node_modules\n", "  - node_modules\n  - vendor\n"),
        TEMPLATE.replace("backend: gob", "backend: qdrant"),
    ]
    hashes = {compute_config_hash(v) for v in variants}
    assert base not in hashes
    assert len(hashes) == len(variants)


def test_config_hash_is_md5_hex():
    digest = compute_config_hash(TEMPLATE)
    assert len(digest) == 32
    int(digest, 16)


def test_read_model_nested():
    assert read_model(TEMPLATE) == "nomic-embed-text"


def test_read_model_ignores_top_level_key():
    assert read_model("model: top\nembedder:\n  model: nested\n") == "nested"


def test_read_model_missing():
    assert read_model("embedder:\n  provider: ollama\n") == ""
    assert read_model("") == ""


def test_read_model_falls_back_on_invalid_yaml():
    broken = "embedder:\n  model: all-minilm\n  bad: [unclosed\n"
    assert read_model(broken) == "all-minilm"


def test_config_hash_matches_shell_hook():
    # grep -v '^\s*endpoint:' config.yaml | md5sum
    kept = "".join(
        line + "\n" for line in TEMPLATE.splitlines() if not line.strip().startswith("endpoint:")
    )
    assert compute_config_hash(TEMPLATE) == hashlib.md5(kept.encode()).hexdigest()


def test_config_hash_ignores_missing_final_newline():
    assert TEMPLATE.endswith("\n")
    assert compute_config_hash(TEMPLATE.rstrip("\n")) == compute_config_hash(TEMPLATE)


def test_config_hash_of_empty_config():
    assert compute_config_hash("") == hashlib.md5(b"").hexdigest()


@pytest.mark.asyncio
async def test_indexer_version_parses_semver():
    result = (0, "grepai version v0.24.1 (abc123)\n", "")
    with patch("gaia_semsearch.fingerprint.run_command", AsyncMock(return_value=result)) as run:
        assert await indexer_version("/usr/local/bin/grepai", timeout=4) == "0.24.1"
    run.assert_awaited_once_with(["/usr/local/bin/grepai", "version"], timeout=4)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [None, (1, "grepai version v0.24.1\n", "boom"), (0, "dev build\n", "")],
)
async def test_indexer_version_unknown(result):
    with patch("gaia_semsearch.fingerprint.run_command", AsyncMock(return_value=result)):
        assert await indexer_version("/usr/local/bin/grepai") == UNKNOWN_VERSION


@pytest.mark.asyncio
async def test_compute_fingerprint(tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(TEMPLATE)
    fp = await compute_fingerprint(cfg, write_indexer(tmp_path / "grepai", version="1.2.3"))
    assert fp.model == "nomic-embed-text"
    assert fp.indexer_version == "1.2.3"
    assert fp.config_hash == compute_config_hash(TEMPLATE)


@pytest.mark.asyncio
async def test_compute_fingerprint_without_config(tmp_path):
    fp = await compute_fingerprint(tmp_path / "missing.yaml", tmp_path / "missing-bin")
    assert fp.model == ""
    assert fp.indexer_version == UNKNOWN_VERSION


@pytest.mark.asyncio
async def test_compute_fingerprint_undecodable_config(tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_bytes(b"embedder:\n  model: x\xff\n")
    fp = await compute_fingerprint(cfg, tmp_path / "missing-bin")
    assert fp.model == ""
    assert fp.config_hash == compute_config_hash("")
