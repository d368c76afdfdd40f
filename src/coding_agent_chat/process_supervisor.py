"""Supervisor for the long-running process of each project.

One child process per project id. stdout and stderr are read by two
background tasks and appended, in arrival order, to the project's
``last_output`` through the project store.
"""

import asyncio
import codecs
from dataclasses import dataclass, field
from datetime import UTC, datetime
import os
import shlex
import signal

import structlog

from .config import Settings
from .errors import SpawnError
from .models import Project, ProjectStatus
from .project_store import ProjectStore
from .runners import get_runner

logger = structlog.get_logger()

READ_CHUNK_SIZE = 4096
READER_DRAIN_TIMEOUT = 2.0


@dataclass
class ProcessHandle:
    """Handle to a running project process."""

    process: asyncio.subprocess.Process
    project_id: str
    port: int
    command: list[str]
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    readers: list[asyncio.Task] = field(default_factory=list)

    @property
    def is_alive(self) -> bool:
        """Check if process is still running."""
        return self.process.returncode is None


@dataclass
class RunResult:
    port: int
    command: list[str]
    output: str


class ProcessSupervisor:
    """Starts, tracks and stops one process per project.

    Ports come from a counter that only moves forward, so a port is never
    handed out twice during the life of the supervisor.
    """

    def __init__(self, store: ProjectStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self._processes: dict[str, ProcessHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._next_port = settings.base_port
        # Children get their own process group so npm and its node child
        # are signalled together
        self._process_groups = settings.kill_process_group and os.name == "posix"

    def allocate_port(self) -> int:
        port = self._next_port
        self._next_port += 1
        return port

    async def start(self, project: Project) -> RunResult:
        """Launch the project, replacing any process it already has.

        Returns after a fixed grace period; a process that crashes right
        after that still counts as started.

        Raises:
            SpawnError: If the command could not be launched
        """
        async with self._lock_for(project.id):
            if project.id in self._processes:
                logger.info("replacing_running_process", project_id=project.id)
                await self._stop_locked(project.id)

            runner = get_runner(project.language, self.settings)
            command = runner.launch_command(project)
            command_text = shlex.join(command)
            port = self.allocate_port()

            logger.info(
                "starting_project_process",
                project_id=project.id,
                command=command_text,
                port=port,
            )

            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=project.path,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env={**os.environ, "PORT": str(port)},
                    start_new_session=self._process_groups,
                )
            except (OSError, ValueError) as e:
                logger.error(
                    "failed_to_start_process",
                    project_id=project.id,
                    command=command_text,
                    error=str(e),
                )
                self.store.set_runtime_state(project.id, ProjectStatus.ERROR, port=port)
                raise SpawnError(f"Failed to start {command_text}: {e}") from e

            handle = ProcessHandle(
                process=process,
                project_id=project.id,
                port=port,
                command=command,
            )
            self._processes[project.id] = handle
            self.store.set_runtime_state(project.id, ProjectStatus.RUNNING, port=port)

            output = f"Project started on port {port}\nCommand: {command_text}\n"
            self.store.append_output(project.id, output)

            handle.readers = [
                asyncio.create_task(
                    self._capture(project.id, process.stdout, is_error=False),
                    name=f"capture_stdout_{project.id}",
                ),
                asyncio.create_task(
                    self._capture(project.id, process.stderr, is_error=True),
                    name=f"capture_stderr_{project.id}",
                ),
            ]

            logger.info(
                "project_process_started",
                project_id=project.id,
                pid=process.pid,
                port=port,
            )

        await asyncio.sleep(self.settings.startup_grace_sec)
        return RunResult(port=port, command=command, output=output)

    async def stop(self, project_id: str) -> str:
        """Stop the project's process if there is one.

        Idempotent: unknown or already stopped projects just end up with
        status stopped. Signal failures are logged, never raised.
        """
        async with self._lock_for(project_id):
            await self._stop_locked(project_id)
        if project_id not in self._processes and self.store.find(project_id) is None:
            # Deleted project; nothing will start it again
            self._locks.pop(project_id, None)
        self.store.set_runtime_state(project_id, ProjectStatus.STOPPED)
        return "Project stopped"

    async def stop_all(self) -> None:
        for project_id in list(self._processes):
            await self.stop(project_id)

    async def _stop_locked(self, project_id: str) -> None:
        handle = self._processes.get(project_id)
        if handle is None:
            logger.debug("no_process_to_stop", project_id=project_id)
            return

        process = handle.process
        timeout = self.settings.stop_timeout_sec
        try:
            if handle.is_alive:
                logger.info("stopping_process", project_id=project_id, pid=process.pid)
                self._signal(process, force=False)
                try:
                    await asyncio.wait_for(process.wait(), timeout=timeout)
                    logger.info("process_terminated_gracefully", project_id=project_id)
                except TimeoutError:
                    logger.warning("process_force_kill", project_id=project_id)
                    self._signal(process, force=True)
                    await asyncio.wait_for(process.wait(), timeout=timeout)
        except ProcessLookupError:
            logger.debug("process_already_dead", project_id=project_id)
        except Exception as e:
            # Handle stays registered; the next start or stop retries
            logger.error(
                "failed_to_stop_process",
                project_id=project_id,
                pid=process.pid,
                error=str(e),
            )
            return

        await self._drain_readers(handle)
        self._processes.pop(project_id, None)
        logger.info(
            "project_process_stopped",
            project_id=project_id,
            returncode=process.returncode,
        )

    def _signal(self, process: asyncio.subprocess.Process, force: bool) -> None:
        if self._process_groups:
            os.killpg(process.pid, signal.SIGKILL if force else signal.SIGTERM)
        elif force:
            process.kill()
        else:
            process.terminate()

    async def _drain_readers(self, handle: ProcessHandle) -> None:
        pending = [task for task in handle.readers if not task.done()]
        if not pending:
            return
        _, still_running = await asyncio.wait(pending, timeout=READER_DRAIN_TIMEOUT)
        for task in still_running:
            task.cancel()

    async def _capture(
        self,
        project_id: str,
        stream: asyncio.StreamReader | None,
        is_error: bool,
    ) -> None:
        """Append everything read from one stream to the project log."""
        if stream is None:
            return

        stream_name = "stderr" if is_error else "stdout"
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._record(project_id, decoder.decode(chunk), is_error)
            self._record(project_id, decoder.decode(b"", final=True), is_error)
        except Exception as e:
            logger.error(
                "output_capture_failed",
                project_id=project_id,
                stream=stream_name,
                error=str(e),
            )
        logger.debug("output_capture_finished", project_id=project_id, stream=stream_name)

    def _record(self, project_id: str, text: str, is_error: bool) -> None:
        if not text:
            return
        self.store.append_output(project_id, text)
        if is_error:
            logger.warning("project_stderr", project_id=project_id, output=text.rstrip())
        else:
            logger.debug("project_stdout", project_id=project_id, output=text.rstrip())

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks[project_id] = asyncio.Lock()
        return lock

    def get_handle(self, project_id: str) -> ProcessHandle | None:
        return self._processes.get(project_id)

    def list_running(self) -> list[str]:
        return [pid for pid, handle in self._processes.items() if handle.is_alive]

    def is_running(self, project_id: str) -> bool:
        handle = self._processes.get(project_id)
        return handle is not None and handle.is_alive

    def reset(self) -> None:
        """Forget all handles and restart the port counter. Tests only."""
        self._processes.clear()
        self._locks.clear()
        self._next_port = self.settings.base_port
