"""Build and run sequencing for projects.

Status transitions:
    created -> building -> created | error      (build)
    running -> building -> running | error      (build with a live process)
    created | error | stopped -> running        (run)
    running -> stopped                          (stop)
    restart = stop, fixed delay, run
"""

import asyncio
from dataclasses import dataclass
import shlex

import structlog

from .config import Settings
from .errors import SpawnError
from .models import Project, ProjectStatus
from .process_supervisor import ProcessSupervisor, RunResult
from .project_store import ProjectStore
from .runners import get_runner

logger = structlog.get_logger()


@dataclass
class BuildResult:
    success: bool
    output: str


class ProjectOrchestrator:
    """Sequences dependency install and execution per project language."""

    def __init__(
        self,
        store: ProjectStore,
        supervisor: ProcessSupervisor,
        settings: Settings,
    ) -> None:
        self.store = store
        self.supervisor = supervisor
        self.settings = settings

    async def build(self, project_id: str) -> BuildResult:
        """Install dependencies for the project.

        An installer that exits non-zero or times out is reported in the
        output with status error; only a failure to launch it raises.

        Raises:
            NotFoundError: Unknown project
            SpawnError: Installer could not be started
        """
        project = self.store.get(project_id)
        # A live process keeps its status through a successful build
        if self.supervisor.is_running(project_id):
            settled = ProjectStatus.RUNNING
        else:
            settled = ProjectStatus.CREATED
        self.store.set_runtime_state(project_id, ProjectStatus.BUILDING)

        runner = get_runner(project.language, self.settings)
        command = runner.install_command(project)
        if command is None:
            logger.info("build_skipped", project_id=project_id, language=project.language.value)
            self.store.set_runtime_state(project_id, settled)
            return BuildResult(
                success=True,
                output=f"{runner.skip_reason(project)}\n"
                "Build completed (no dependencies to install)\n",
            )

        logger.info("installing_dependencies", project_id=project_id, command=shlex.join(command))
        try:
            returncode, output = await self._run_installer(project, command)
        except SpawnError:
            self.store.set_runtime_state(project_id, ProjectStatus.ERROR)
            raise

        if returncode == 0:
            self.store.set_runtime_state(project_id, settled)
            logger.info("dependencies_installed", project_id=project_id)
            return BuildResult(success=True, output=f"{output}\nDependencies installed successfully\n")

        self.store.set_runtime_state(project_id, ProjectStatus.ERROR)
        if returncode is None:
            reason = f"timed out after {self.settings.install_timeout_sec:g}s"
        else:
            reason = f"exit code {returncode}"
        logger.warning("dependency_install_failed", project_id=project_id, reason=reason)
        return BuildResult(
            success=False,
            output=f"{output}\nDependency installation failed ({reason})\n",
        )

    async def _run_installer(self, project: Project, command: list[str]) -> tuple[int | None, str]:
        """Run the installer with stderr merged into stdout.

        Returns (returncode, output); returncode is None on timeout.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=project.path,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            logger.error(
                "failed_to_start_installer",
                project_id=project.id,
                command=shlex.join(command),
                error=str(e),
            )
            raise SpawnError(f"Failed to start {shlex.join(command)}: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=self.settings.install_timeout_sec,
            )
        except TimeoutError:
            process.kill()
            await process.wait()
            return None, ""

        return process.returncode, (stdout or b"").decode("utf-8", errors="replace")

    async def run(self, project_id: str) -> RunResult:
        project = self.store.get(project_id)
        return await self.supervisor.start(project)

    async def stop(self, project_id: str) -> str:
        self.store.get(project_id)
        return await self.supervisor.stop(project_id)

    async def restart(self, project_id: str) -> RunResult:
        """Stop, wait a fixed delay, start again. Not atomic."""
        await self.stop(project_id)
        await asyncio.sleep(self.settings.restart_delay_sec)
        return await self.run(project_id)

    async def delete(self, project_id: str) -> Project | None:
        return await self.store.delete(project_id, stop_process=self.supervisor.stop)

    def output(self, project_id: str) -> Project:
        """Project whose ``last_output`` the UI polls."""
        return self.store.get(project_id)
