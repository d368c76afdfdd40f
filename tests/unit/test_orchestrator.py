"""Tests for ProjectOrchestrator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coding_agent_chat.errors import NotFoundError, SpawnError
from coding_agent_chat.models import Language, ProjectStatus
from coding_agent_chat.orchestrator import ProjectOrchestrator
from tests.helpers import make_file, make_process


@pytest.fixture
def orchestrator(store, supervisor, settings) -> ProjectOrchestrator:
    return ProjectOrchestrator(store, supervisor, settings)


def make_installer(returncode: int = 0, output: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(output, None))
    process.wait = AsyncMock(return_value=returncode)
    return process


class TestBuild:
    @pytest.mark.asyncio
    async def test_skips_without_manifest(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "plain js")

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            result = await orchestrator.build(project.id)

        mock_exec.assert_not_called()
        assert result.success
        assert "No package.json found" in result.output
        assert "Build completed (no dependencies to install)" in result.output
        assert project.status == ProjectStatus.CREATED

    @pytest.mark.asyncio
    async def test_npm_install_success(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [make_file("package.json", "{}", Language.JSON), make_file("index.js", "1")], "npm app"
        )
        installer = make_installer(output=b"added 3 packages\n")

        with patch("asyncio.create_subprocess_exec", return_value=installer) as mock_exec:
            result = await orchestrator.build(project.id)

        args = mock_exec.call_args.args
        assert args[-1] == "install"
        assert mock_exec.call_args.kwargs["stderr"] == asyncio.subprocess.STDOUT
        assert mock_exec.call_args.kwargs["cwd"] == project.path
        assert result.success
        assert "added 3 packages" in result.output
        assert "Dependencies installed successfully" in result.output
        assert project.status == ProjectStatus.CREATED

    @pytest.mark.asyncio
    async def test_npm_install_failure(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [make_file("package.json", "{}", Language.JSON), make_file("index.js", "1")], "npm app"
        )
        installer = make_installer(returncode=1, output=b"npm ERR! 404\n")

        with patch("asyncio.create_subprocess_exec", return_value=installer):
            result = await orchestrator.build(project.id)

        assert not result.success
        assert "npm ERR! 404" in result.output
        assert "Dependency installation failed (exit code 1)" in result.output
        assert project.status == ProjectStatus.ERROR

    @pytest.mark.asyncio
    async def test_pip_install_for_python(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [
                make_file("main.py", "print(1)", Language.PYTHON),
                make_file("requirements.txt", "requests", Language.TEXT),
            ],
            "py app",
        )

        with patch("asyncio.create_subprocess_exec", return_value=make_installer()) as mock_exec:
            result = await orchestrator.build(project.id)

        assert list(mock_exec.call_args.args[1:]) == ["install", "-r", "requirements.txt"]
        assert result.success

    @pytest.mark.asyncio
    async def test_python_without_requirements(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [make_file("main.py", "print(1)", Language.PYTHON)], "py app"
        )

        result = await orchestrator.build(project.id)

        assert result.success
        assert result.output.startswith("No requirements.txt found\n")

    @pytest.mark.asyncio
    async def test_install_timeout(self, store, settings, orchestrator: ProjectOrchestrator):
        settings.install_timeout_sec = 0.05
        project = await store.create_or_update(
            [make_file("package.json", "{}", Language.JSON)], "slow install"
        )

        async def hang():
            await asyncio.sleep(10)

        installer = make_installer()
        installer.communicate = AsyncMock(side_effect=hang)

        with patch("asyncio.create_subprocess_exec", return_value=installer):
            result = await orchestrator.build(project.id)

        installer.kill.assert_called_once()
        assert not result.success
        assert "timed out after 0.05s" in result.output
        assert project.status == ProjectStatus.ERROR

    @pytest.mark.asyncio
    async def test_installer_spawn_failure(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [make_file("package.json", "{}", Language.JSON)], "no npm"
        )

        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("npm")):
            with pytest.raises(SpawnError):
                await orchestrator.build(project.id)

        assert project.status == ProjectStatus.ERROR

    @pytest.mark.asyncio
    async def test_unknown_project(self, orchestrator: ProjectOrchestrator):
        with pytest.raises(NotFoundError):
            await orchestrator.build("missing")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_run_and_stop(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "run me")
        process = make_process()

        with patch("asyncio.create_subprocess_exec", return_value=process):
            result = await orchestrator.run(project.id)
        message = await orchestrator.stop(project.id)

        assert result.port == 3001
        assert message == "Project stopped"
        assert project.status == ProjectStatus.STOPPED
        assert "Project started on port 3001" in orchestrator.output(project.id).last_output

    @pytest.mark.asyncio
    async def test_restart_uses_new_port(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "restart me")
        first, second = make_process(pid=1), make_process(pid=2)

        with patch("asyncio.create_subprocess_exec", side_effect=[first, second]):
            await orchestrator.run(project.id)
            result = await orchestrator.restart(project.id)

        first.terminate.assert_called_once()
        assert result.port == 3002
        assert project.status == ProjectStatus.RUNNING
        assert project.last_output.count("Project started on port") == 2

    @pytest.mark.asyncio
    async def test_port_grows_after_delete(self, store, orchestrator: ProjectOrchestrator):
        first = await store.create_or_update([make_file("index.js", "1")], "first")

        with patch("asyncio.create_subprocess_exec", side_effect=lambda *a, **k: make_process()):
            first_run = await orchestrator.run(first.id)
            await orchestrator.delete(first.id)
            second = await store.create_or_update([make_file("index.js", "2")], "second")
            second_run = await orchestrator.run(second.id)

        assert second_run.port > first_run.port
        assert second.port == second_run.port

    @pytest.mark.asyncio
    async def test_build_keeps_running_status(self, store, orchestrator: ProjectOrchestrator):
        project = await store.create_or_update(
            [make_file("package.json", "{}", Language.JSON), make_file("index.js", "1")], "live"
        )

        with patch("asyncio.create_subprocess_exec", return_value=make_process()):
            await orchestrator.run(project.id)
        with patch("asyncio.create_subprocess_exec", return_value=make_installer()):
            result = await orchestrator.build(project.id)

        assert result.success
        assert project.status == ProjectStatus.RUNNING

    @pytest.mark.asyncio
    async def test_skipped_build_keeps_running_status(self, store, orchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "live")

        with patch("asyncio.create_subprocess_exec", return_value=make_process()):
            await orchestrator.run(project.id)
        await orchestrator.build(project.id)

        assert project.status == ProjectStatus.RUNNING

    @pytest.mark.asyncio
    async def test_delete_releases_process_lock(self, store, supervisor, orchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "short lived")

        with patch("asyncio.create_subprocess_exec", return_value=make_process()):
            await orchestrator.run(project.id)
        await orchestrator.delete(project.id)

        assert project.id not in supervisor._locks

    @pytest.mark.asyncio
    async def test_run_unknown_project(self, orchestrator: ProjectOrchestrator):
        with pytest.raises(NotFoundError):
            await orchestrator.run("missing")
        with pytest.raises(NotFoundError):
            await orchestrator.stop("missing")
        with pytest.raises(NotFoundError):
            orchestrator.output("missing")

    @pytest.mark.asyncio
    async def test_delete_stops_running_process(self, store, supervisor, orchestrator):
        project = await store.create_or_update([make_file("index.js", "1")], "delete me")
        process = make_process()

        with patch("asyncio.create_subprocess_exec", return_value=process):
            await orchestrator.run(project.id)
        deleted = await orchestrator.delete(project.id)

        assert deleted is project
        process.terminate.assert_called_once()
        assert supervisor.get_handle(project.id) is None
        assert store.find(project.id) is None
        assert await orchestrator.delete(project.id) is None
