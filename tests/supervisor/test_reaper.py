"""
Tests for port reaping.
"""

import asyncio
import os
import shutil
import socket
import subprocess
import sys
from typing import List

import pytest

from meseca.supervisor import (
    PosixProcessReaper,
    ProcessReaper,
    WindowsProcessReaper,
    get_process_reaper,
)
from meseca.supervisor.reaper import parse_netstat_listeners, parse_pid_lines, run_command


NETSTAT_OUTPUT = """
Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       948
  TCP    0.0.0.0:7000           0.0.0.0:0              LISTENING       5120
  TCP    0.0.0.0:70001          0.0.0.0:0              LISTENING       6000
  TCP    127.0.0.1:7000         127.0.0.1:52311        ESTABLISHED     5120
  TCP    [::]:7000              [::]:0                 LISTENING       5120
  TCP    [::]:7001              [::]:0                 LISTENING       7788
  UDP    0.0.0.0:7000           *:*                                    4444
"""


class FakeReaper(ProcessReaper):
    def __init__(self, pids: List[int], fail_kill=(), fail_lookup: bool = False):
        self.pids = pids
        self.fail_kill = set(fail_kill)
        self.fail_lookup = fail_lookup
        self.killed: List[int] = []

    async def find_pids(self, port: int) -> List[int]:
        if self.fail_lookup:
            raise RuntimeError("lookup failed")
        return self.pids

    async def kill(self, pid: int) -> None:
        if pid in self.fail_kill:
            raise ProcessLookupError(pid)
        self.killed.append(pid)


class TestParsers:
    """Test parsing of system tool output."""

    def test_parse_pid_lines(self):
        assert parse_pid_lines("123\n456\n\n123\nnot-a-pid\n") == [123, 456]

    def test_parse_pid_lines_empty(self):
        assert parse_pid_lines("") == []

    def test_parse_netstat_listeners(self):
        assert parse_netstat_listeners(NETSTAT_OUTPUT, 7000) == [5120]
        assert parse_netstat_listeners(NETSTAT_OUTPUT, 7001) == [7788]

    def test_parse_netstat_ignores_other_ports(self):
        assert parse_netstat_listeners(NETSTAT_OUTPUT, 5000) == []


class TestFreePort:
    """Test best-effort reaping."""

    @pytest.mark.asyncio
    async def test_kills_every_owner(self):
        reaper = FakeReaper([101, 102])

        assert await reaper.free_port(7000) == [101, 102]
        assert reaper.killed == [101, 102]

    @pytest.mark.asyncio
    async def test_nothing_to_kill(self):
        reaper = FakeReaper([])

        assert await reaper.free_port(7000) == []

    @pytest.mark.asyncio
    async def test_failed_kill_is_ignored(self):
        reaper = FakeReaper([101, 102], fail_kill=[101])

        assert await reaper.free_port(7000) == [102]

    @pytest.mark.asyncio
    async def test_failed_lookup_is_ignored(self):
        reaper = FakeReaper([101], fail_lookup=True)

        assert await reaper.free_port(7000) == []
        assert reaper.killed == []

    @pytest.mark.asyncio
    async def test_never_kills_itself(self):
        reaper = FakeReaper([os.getpid(), 101])

        assert await reaper.free_port(7000) == [101]


class TestPlatformSelection:
    """Test reaper selection by platform."""

    @pytest.mark.parametrize("platform", ["win32", "win64"])
    def test_windows(self, platform):
        assert isinstance(get_process_reaper(platform), WindowsProcessReaper)

    @pytest.mark.parametrize("platform", ["linux", "darwin"])
    def test_posix(self, platform):
        assert isinstance(get_process_reaper(platform), PosixProcessReaper)


class TestSystemTools:
    """Test reapers against stubbed system commands."""

    @pytest.mark.asyncio
    async def test_posix_uses_lsof(self, monkeypatch):
        calls = []

        async def fake_run(*argv, **kwargs):
            calls.append(argv)
            return "321\n"

        monkeypatch.setattr("meseca.supervisor.reaper.run_command", fake_run)

        assert await PosixProcessReaper().find_pids(7000) == [321]
        assert calls == [("lsof", "-nP", "-iTCP:7000", "-sTCP:LISTEN", "-t")]

    @pytest.mark.asyncio
    async def test_windows_uses_netstat_and_taskkill(self, monkeypatch):
        calls = []

        async def fake_run(*argv, **kwargs):
            calls.append(argv)
            return NETSTAT_OUTPUT if argv[0] == "netstat" else ""

        monkeypatch.setattr("meseca.supervisor.reaper.run_command", fake_run)
        reaper = WindowsProcessReaper()

        assert await reaper.free_port(7001) == [7788]
        assert calls == [("netstat", "-aon"), ("taskkill", "/F", "/PID", "7788")]

    @pytest.mark.asyncio
    async def test_missing_tool_means_nothing_found(self, monkeypatch):
        from meseca.supervisor import reaper as reaper_module

        async def fake_exec(*argv, **kwargs):
            raise FileNotFoundError(argv[0])

        monkeypatch.setattr(reaper_module.asyncio, "create_subprocess_exec", fake_exec)

        assert await reaper_module.run_command("lsof", "-ti:7000") == ""
        assert await PosixProcessReaper().free_port(7000) == []

    @pytest.mark.asyncio
    async def test_failed_taskkill_is_not_counted(self, monkeypatch):
        async def fake_run(*argv, check=False):
            if argv[0] == "taskkill":
                assert check is True
                raise subprocess.CalledProcessError(128, list(argv))
            return NETSTAT_OUTPUT

        monkeypatch.setattr("meseca.supervisor.reaper.run_command", fake_run)

        assert await WindowsProcessReaper().free_port(7001) == []

    @pytest.mark.asyncio
    async def test_run_command_raises_on_failure_when_checked(self):
        argv = (sys.executable, "-c", "import sys; sys.exit(2)")

        assert await run_command(*argv) == ""
        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            await run_command(*argv, check=True)

        assert exc_info.value.returncode == 2


@pytest.mark.skipif(shutil.which("lsof") is None or sys.platform.startswith("win"), reason="requires lsof")
class TestPosixListenerLookup:
    """Test lookup against real sockets."""

    @pytest.mark.asyncio
    async def test_finds_listener_but_not_connected_client(self):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]
        client = await asyncio.create_subprocess_exec(
            sys.executable,
            "-c",
            "import socket, sys, time\n"
            f"conn = socket.create_connection(('127.0.0.1', {port}))\n"
            "print('connected', flush=True)\n"
            "time.sleep(30)\n",
            stdout=asyncio.subprocess.PIPE,
        )
        try:
            assert await asyncio.wait_for(client.stdout.readline(), timeout=10) == b"connected\n"

            pids = await PosixProcessReaper().find_pids(port)

            assert os.getpid() in pids
            assert client.pid not in pids
        finally:
            client.kill()
            await client.wait()
            listener.close()
