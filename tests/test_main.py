"""Tests for the command line."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from gaia_semsearch import main as cli
from gaia_semsearch.models.schemas import InitOutcome


@pytest.fixture
def patched(config):
    with patch.object(cli, "get_config", return_value=config), \
            patch.object(cli, "setup_logging"):
        yield


def test_status_prints_json(patched, capsys):
    assert cli.main(["status"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["record"] is None
    assert report["daemon_pid"] is None
    assert report["index_present"] is False


@pytest.mark.parametrize(
    "outcome, strict, code",
    [
        (InitOutcome.READY, False, 0),
        (InitOutcome.READY, True, 0),
        (InitOutcome.BACKEND_UNREACHABLE, False, 0),
        (InitOutcome.BACKEND_UNREACHABLE, True, 1),
        (InitOutcome.START_FAILED, True, 1),
    ],
)
def test_init_exit_codes(patched, outcome, strict, code):
    argv = ["--strict", "init"] if strict else ["init"]
    with patch.object(cli.IndexLifecycleManager, "initialize", AsyncMock(return_value=outcome)):
        assert cli.main(argv) == code


def test_rebuild_command(patched):
    rebuild = AsyncMock(return_value=InitOutcome.READY)
    with patch.object(cli.IndexLifecycleManager, "rebuild", rebuild):
        assert cli.main(["rebuild"]) == 0
    rebuild.assert_awaited_once()


def test_start_runs_init_then_watchdog(patched):
    initialize = AsyncMock(return_value=InitOutcome.MODEL_MISSING)
    run_watchdog = AsyncMock()
    with patch.object(cli.IndexLifecycleManager, "initialize", initialize), \
            patch.object(cli, "_run_watchdog", run_watchdog):
        assert cli.main(["start"]) == 0
    initialize.assert_awaited_once_with(quiet=False)
    run_watchdog.assert_awaited_once()


def test_unknown_command():
    with pytest.raises(SystemExit):
        cli.main(["bogus"])


def test_start_survives_initialize_error(patched, caplog):
    initialize = AsyncMock(side_effect=RuntimeError("boom"))
    run_watchdog = AsyncMock()
    with patch.object(cli.IndexLifecycleManager, "initialize", initialize), \
            patch.object(cli, "_run_watchdog", run_watchdog):
        assert cli.main(["--strict", "start"]) == 0
    run_watchdog.assert_awaited_once()
    assert "Initialization failed" in caplog.text
