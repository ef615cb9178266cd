"""
Local process supervisor for the voice backends.

For each configured service, in order:

    IDLE -> PROBING -> [REAPING ->] SPAWNING -> RUNNING -> EXITED

A port found occupied is reaped once and the service is spawned without
re-probing. Output of every child is relayed line by line, tagged with the
service name. An exited service is not restarted. A failure while probing or
spawning marks that service FAILED and the sequence moves on to the next one.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from meseca.supervisor.models import ServiceDescriptor, ServiceState, SupervisedProcess
from meseca.supervisor.port_probe import is_port_occupied
from meseca.supervisor.reaper import ProcessReaper, get_process_reaper

logger = logging.getLogger(__name__)


class ProcessSupervisor:
    """Starts the configured backends and relays their output."""

    def __init__(
        self,
        services: Iterable[ServiceDescriptor],
        probe: Callable[[int], bool] = is_port_occupied,
        reaper: Optional[ProcessReaper] = None,
        cwd: Optional[str] = None
    ):
        """
        Initialize the supervisor.

        Args:
            services: Descriptors of the services to start, in start order
            probe: Port occupancy check
            reaper: Port reaper, platform default if None
            cwd: Working directory for spawned services
        """
        self.services: List[ServiceDescriptor] = list(services)
        self.probe = probe
        self.reaper = reaper or get_process_reaper()
        self.cwd = cwd
        self.processes: Dict[str, SupervisedProcess] = {}
        self._tasks: Set[asyncio.Task] = set()

    async def start_all(self) -> Dict[str, SupervisedProcess]:
        """
        Run the start sequence for every configured service.

        Returns:
            Handles for this run, keyed by service name
        """
        started: Dict[str, SupervisedProcess] = {}
        for descriptor in self.services:
            managed = SupervisedProcess(descriptor=descriptor)
            self.processes[descriptor.name] = managed
            started[descriptor.name] = managed
            try:
                await self.start_service(managed)
            except Exception as e:
                managed.state = ServiceState.FAILED
                managed.error = str(e)
                logger.error(f"Failed to start {descriptor.name}: {e}")
        logger.info("Start sequence complete.")
        return started

    async def start_service(self, managed: SupervisedProcess) -> SupervisedProcess:
        """Probe, reap if needed, spawn and attach output relays for one service."""
        descriptor = managed.descriptor

        managed.state = ServiceState.PROBING
        if self.probe(descriptor.port):
            managed.state = ServiceState.REAPING
            logger.warning(
                f"{descriptor.name} port {descriptor.port} busy, attempting to kill old process"
            )
            managed.reaped_pids = await self.reaper.free_port(descriptor.port)

        managed.state = ServiceState.SPAWNING
        process = await asyncio.create_subprocess_exec(
            descriptor.command,
            *descriptor.args,
            cwd=self.cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        managed.process = process
        managed.pid = process.pid
        managed.state = ServiceState.RUNNING
        logger.info(f"Starting {descriptor.name} - PID {process.pid}")

        readers = [
            self._spawn_task(self._relay_output(descriptor.name, process.stdout, "stdout", logging.INFO, "")),
            self._spawn_task(self._relay_output(descriptor.name, process.stderr, "stderr", logging.WARNING, " ERROR")),
        ]
        self._spawn_task(self._watch_exit(managed, readers))
        return managed

    def _spawn_task(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _relay_output(
        self,
        name: str,
        stream: Optional[asyncio.StreamReader],
        stream_name: str,
        level: int,
        tag_suffix: str
    ) -> None:
        """Relay each line of ``stream`` to the log, tagged with the service name."""
        if stream is None:
            return
        prefix = f"[{name}{tag_suffix}]"
        extra = {"service": name, "stream": stream_name}
        try:
            while True:
                line = await stream.readline()
                if not line:
                    break
                decoded = line.decode("utf-8", errors="replace").rstrip()
                if decoded:
                    logger.log(level, f"{prefix} {decoded}", extra=extra)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Output streaming error for {name}: {e}")

    async def _watch_exit(self, managed: SupervisedProcess, readers: List[asyncio.Task]) -> None:
        exit_code = await managed.process.wait()
        # Let the relays drain what the process wrote before exiting
        await asyncio.gather(*readers, return_exceptions=True)
        managed.exit_code = exit_code
        managed.state = ServiceState.EXITED
        logger.info(f"{managed.name} exited with code {exit_code}")

    async def stop_all(self, timeout: float = 5.0) -> None:
        """Terminate children that are still running, killing any that linger."""
        running = [
            managed for managed in self.processes.values()
            if managed.state is ServiceState.RUNNING and managed.process is not None
        ]
        for managed in running:
            try:
                managed.process.terminate()
            except ProcessLookupError:
                continue
            try:
                await asyncio.wait_for(managed.process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"{managed.name} did not stop within {timeout}s, killing")
                try:
                    managed.process.kill()
                except ProcessLookupError:
                    continue
                await managed.process.wait()

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def snapshot(self) -> List[Dict[str, object]]:
        """Current state of every service, in configuration order."""
        result = []
        for descriptor in self.services:
            managed = self.processes.get(descriptor.name)
            if managed is None:
                managed = SupervisedProcess(descriptor=descriptor)
            result.append(managed.to_dict())
        return result
