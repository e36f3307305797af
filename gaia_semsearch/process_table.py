"""
Process discovery by command line, plus a non-blocking command runner.

The daemon is always re-discovered from the process table; no PID is
trusted across calls.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Tuple

logger = logging.getLogger("GAIA.SemSearch.ProcessTable")


class ProcessLookup(Protocol):
    """Capability: find a live process by command signature."""

    def find(self, signature: str) -> Optional[int]:
        ...

    def is_alive(self, pid: int) -> bool:
        ...


class ProcTableLookup:
    """ProcessLookup backed by ``/proc/<pid>/cmdline``."""

    def __init__(self, proc_root: Path = Path("/proc")) -> None:
        self.proc_root = proc_root

    def _iter_cmdlines(self) -> Iterator[Tuple[int, str]]:
        try:
            entries = list(self.proc_root.iterdir())
        except OSError as e:
            logger.warning("Cannot list %s: %s", self.proc_root, e)
            return
        for entry in entries:
            if not entry.name.isdigit():
                continue
            try:
                raw = (entry / "cmdline").read_bytes()
            except OSError:
                # Process exited between listing and reading
                continue
            if not raw:
                continue
            cmdline = raw.rstrip(b"\0").replace(b"\0", b" ").decode(errors="replace")
            yield int(entry.name), cmdline

    def find(self, signature: str) -> Optional[int]:
        """Lowest PID whose command line contains ``signature``."""
        own_pid = os.getpid()
        matches = [
            pid for pid, cmdline in self._iter_cmdlines()
            if pid != own_pid and signature in cmdline
        ]
        return min(matches) if matches else None

    def is_alive(self, pid: int) -> bool:
        # Zombies keep their /proc entry but report an empty cmdline
        try:
            return bool((self.proc_root / str(pid) / "cmdline").read_bytes())
        except OSError:
            return False


def reap_children() -> None:
    """Collect exited children so a dead daemon does not linger as a zombie."""
    while True:
        try:
            pid, _ = os.waitpid(-1, os.WNOHANG)
        except ChildProcessError:
            return
        if pid == 0:
            return
        logger.debug("Reaped exited child %d", pid)


async def run_command(
    cmd: List[str], timeout: float, cwd: Optional[Path] = None,
) -> Optional[Tuple[int, str, str]]:
    """
    Run a short-lived command without blocking the event loop.

    Returns:
        (returncode, stdout, stderr), or None when the command could not be
        started or did not finish within ``timeout`` (it is killed).
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.debug("Cannot run %s: %s", cmd[0], e)
        return None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %ss", " ".join(cmd[:2]), timeout)
        proc.kill()
        await proc.wait()
        return None

    return (
        proc.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )
