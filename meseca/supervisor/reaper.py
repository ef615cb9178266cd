"""
Platform-specific termination of whatever process owns a port.

Reaping is best effort. Finding nothing, a missing system tool or a failed
kill all count as done, and the port may still be held for a moment after
``free_port`` returns.
"""

import asyncio
import logging
import os
import re
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import List, Optional

logger = logging.getLogger(__name__)


async def run_command(*argv: str, check: bool = False) -> str:
    """
    Run a system command and return its stdout.

    Args:
        argv: Command and arguments
        check: Raise if the command cannot run or exits non-zero; otherwise
            such failures return ""

    Raises:
        subprocess.CalledProcessError: If ``check`` and the exit status is non-zero
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except (FileNotFoundError, PermissionError) as e:
        if check:
            raise
        logger.debug(f"Could not run {argv[0]}: {e}")
        return ""
    stdout, _ = await proc.communicate()
    if check and proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, list(argv), output=stdout)
    return stdout.decode(errors="replace")


class ProcessReaper(ABC):
    """Terminates the processes listening on a port."""

    async def free_port(self, port: int) -> List[int]:
        """
        Kill whatever owns ``port``.

        Returns:
            PIDs that were signalled
        """
        try:
            pids = await self.find_pids(port)
        except Exception as e:
            logger.warning(f"Could not look up owner of port {port}: {e}")
            return []

        killed = []
        for pid in pids:
            if pid == os.getpid():
                continue
            try:
                await self.kill(pid)
                killed.append(pid)
                logger.info(f"Killed stale process on port {port} (PID: {pid})")
            except Exception as e:
                logger.debug(f"Could not kill PID {pid}: {e}")
        return killed

    @abstractmethod
    async def find_pids(self, port: int) -> List[int]:
        """PIDs currently listening on ``port``."""

    @abstractmethod
    async def kill(self, pid: int) -> None:
        """Forcefully terminate ``pid``."""


def parse_pid_lines(output: str) -> List[int]:
    """Parse one PID per line, ignoring anything else."""
    pids = []
    for line in output.splitlines():
        line = line.strip()
        if line.isdigit():
            pid = int(line)
            if pid not in pids:
                pids.append(pid)
    return pids


def parse_netstat_listeners(output: str, port: int) -> List[int]:
    """PIDs of ``LISTENING`` rows bound to ``port`` in ``netstat -aon`` output."""
    pids = []
    pattern = re.compile(rf":{port}$")
    for line in output.splitlines():
        columns = line.split()
        if len(columns) < 5 or columns[3].upper() != "LISTENING":
            continue
        if not pattern.search(columns[1]):
            continue
        if columns[4].isdigit():
            pid = int(columns[4])
            if pid not in pids:
                pids.append(pid)
    return pids


class PosixProcessReaper(ProcessReaper):
    """Uses ``lsof`` to find listeners and SIGKILL to stop them."""

    async def find_pids(self, port: int) -> List[int]:
        # Only the listening socket; clients connected to the port are left alone
        output = await run_command("lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t")
        return parse_pid_lines(output)

    async def kill(self, pid: int) -> None:
        os.kill(pid, signal.SIGKILL)


class WindowsProcessReaper(ProcessReaper):
    """Uses ``netstat -aon`` to find listeners and ``taskkill /F`` to stop them."""

    async def find_pids(self, port: int) -> List[int]:
        return parse_netstat_listeners(await run_command("netstat", "-aon"), port)

    async def kill(self, pid: int) -> None:
        await run_command("taskkill", "/F", "/PID", str(pid), check=True)


def get_process_reaper(platform: Optional[str] = None) -> ProcessReaper:
    """Select the reaper for ``platform`` (defaults to the running one)."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsProcessReaper()
    return PosixProcessReaper()
