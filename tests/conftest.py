"""Shared fixtures for gaia-semsearch tests."""

import subprocess
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Optional
from unittest.mock import MagicMock, patch

import pytest

from gaia_semsearch.config import SemSearchConfig, reset_config
from gaia_semsearch.lifecycle import IndexLifecycleManager
from gaia_semsearch.models.schemas import EndpointResolution

TEMPLATE = """\
version: 1
embedder:
  provider: ollama
  model: nomic-embed-text
  endpoint: http://localhost:11434
  dimensions: 768
store:
  backend: gob
chunking:
  size: 512
  overlap: 50
ignore:
  - .git
  - node_modules
"""

DAEMON_PID = 4242


@contextmanager
def patch_supervisor_popen(**kwargs):
    """Patch ``Popen`` only as the supervisor sees it.

    Patching ``gaia_semsearch.supervisor.subprocess.Popen`` directly replaces
    the standard-library ``subprocess.Popen``, which asyncio's
    ``create_subprocess_exec`` also uses.
    """
    module = SimpleNamespace(
        Popen=subprocess.Popen, DEVNULL=subprocess.DEVNULL, STDOUT=subprocess.STDOUT,
    )
    with patch("gaia_semsearch.supervisor.subprocess", module):
        with patch("gaia_semsearch.supervisor.subprocess.Popen", **kwargs) as popen:
            yield popen


def write_indexer(path, version="0.3.1"):
    """Fake indexer binary that only answers ``version``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "#!/bin/sh\n"
        f'if [ "$1" = "version" ]; then echo "grepai version v{version}"; fi\n'
    )
    path.chmod(0o755)
    return path


class FakeLookup:
    """ProcessLookup whose process table holds at most one daemon."""

    def __init__(self, pid: Optional[int] = None) -> None:
        self.pid = pid
        self.find_calls = 0

    def find(self, signature: str) -> Optional[int]:
        self.find_calls += 1
        return self.pid

    def is_alive(self, pid: int) -> bool:
        return self.pid == pid


class FakeResolver:
    """EndpointResolver stand-in; ``endpoint=None`` means unreachable."""

    def __init__(self, endpoint: Optional[str] = "localhost:11434", models=("nomic-embed-text",)):
        self.endpoint = endpoint
        self.models = set(models)
        self.resolve_calls = 0

    async def resolve(self) -> Optional[EndpointResolution]:
        self.resolve_calls += 1
        if self.endpoint is None:
            return None
        return EndpointResolution(endpoint=self.endpoint, source="default")

    async def model_available(self, endpoint: str, model: str) -> bool:
        return model in self.models


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    monkeypatch.delenv("SEMSEARCH_CONFIG_FILE", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path):
    """Settings rooted at tmp_path with near-zero waits."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    template = tmp_path / "etc" / "config.yaml"
    template.parent.mkdir()
    template.write_text(TEMPLATE)

    return SemSearchConfig(
        workspace_dir=workspace,
        indexer_bin=write_indexer(tmp_path / "bin" / "grepai"),
        config_template=template,
        default_endpoint="localhost:11434",
        daemon_log=tmp_path / "grepai.log",
        watchdog_log=None,
        watchdog_pid_file=tmp_path / "grepai-watchdog.pid",
        watchdog_initial_delay_seconds=0,
        watchdog_interval_seconds=60,
        start_confirm_timeout_seconds=0.05,
        start_poll_interval_seconds=0.01,
        restart_settle_seconds=0.05,
        stop_grace_seconds=0,
        stop_kill_wait_seconds=0,
    )


@pytest.fixture
def lookup():
    return FakeLookup()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def manager(config, lookup, resolver):
    return IndexLifecycleManager(config, lookup=lookup, resolver=resolver)


@pytest.fixture
def fake_popen(lookup):
    """Patch the daemon launch so the fake process table shows it running."""

    def _launch(*args, **kwargs):
        lookup.pid = DAEMON_PID
        return MagicMock()

    with patch_supervisor_popen(side_effect=_launch) as popen:
        yield popen
