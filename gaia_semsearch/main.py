"""
gaia-semsearch command line.

    gaia-semsearch start      initialize, then watch for the life of the process
    gaia-semsearch init       one-shot initialization
    gaia-semsearch watchdog   watchdog loop only
    gaia-semsearch status     print the current state as JSON
    gaia-semsearch rebuild    discard the index, then initialize

The container start hook runs ``start`` in the background. Every outcome
exits 0 unless ``--strict`` is given.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import get_config
from .lifecycle import IndexLifecycleManager
from .logging_setup import setup_logging
from .models.schemas import InitOutcome
from .watchdog import IndexWatchdog

logger = logging.getLogger("GAIA.SemSearch.Main")


async def _run_watchdog(manager: IndexLifecycleManager) -> None:
    watchdog = IndexWatchdog(manager)
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler(signum: int) -> None:
        logger.info("Signal %d received, stopping...", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler, sig)

    await watchdog.start()
    await stop_event.wait()
    await watchdog.stop()


async def _start(manager: IndexLifecycleManager) -> Optional[InitOutcome]:
    outcome: Optional[InitOutcome] = None
    try:
        outcome = await manager.initialize(quiet=False)
        logger.info("Initialization finished: %s", outcome.value)
    except Exception:
        logger.error("Initialization failed, leaving recovery to the watchdog", exc_info=True)
    # The watchdog handles both daemon monitoring and deferred init
    await _run_watchdog(manager)
    return outcome


def _exit_code(outcome: Optional[InitOutcome], strict: bool) -> int:
    if strict and outcome is not None and outcome is not InitOutcome.READY:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gaia-semsearch",
        description="Semantic-search index lifecycle manager",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: SEMSEARCH_CONFIG_FILE or config/semsearch.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Diagnostic log file (default: watchdog_log setting)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit 1 when initialization does not reach READY",
    )
    parser.add_argument(
        "command",
        choices=["start", "init", "watchdog", "status", "rebuild"],
        help="What to run",
    )
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config(args.config)

    setup_logging(
        log_file=args.log_file or config.watchdog_log,
        level=getattr(logging, args.log_level),
    )
    manager = IndexLifecycleManager(config)

    outcome: Optional[InitOutcome] = None
    if args.command == "status":
        print(manager.status().model_dump_json(indent=2))
    elif args.command == "init":
        outcome = asyncio.run(manager.initialize(quiet=False))
        logger.info("Initialization finished: %s", outcome.value)
    elif args.command == "rebuild":
        outcome = asyncio.run(manager.rebuild())
        logger.info("Rebuild finished: %s", outcome.value)
    elif args.command == "watchdog":
        asyncio.run(_run_watchdog(manager))
    else:
        outcome = asyncio.run(_start(manager))

    return _exit_code(outcome, args.strict)


if __name__ == "__main__":
    sys.exit(main())
