"""Shared fixtures for unit tests."""

import pytest

from coding_agent_chat.config import Settings
from coding_agent_chat.process_supervisor import ProcessSupervisor
from coding_agent_chat.project_store import ProjectStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        projects_root=tmp_path / "projects",
        static_dir=tmp_path / "no-static",
        startup_grace_sec=0,
        restart_delay_sec=0,
        stop_timeout_sec=1.0,
        kill_process_group=False,
        log_level="INFO",
        log_format="console",
    )


@pytest.fixture
def store(settings) -> ProjectStore:
    return ProjectStore(settings.projects_root)


@pytest.fixture
def supervisor(store, settings) -> ProcessSupervisor:
    return ProcessSupervisor(store, settings)
