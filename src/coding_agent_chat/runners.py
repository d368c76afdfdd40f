"""Per-language install and launch commands for generated projects."""

from dataclasses import dataclass
from pathlib import Path
import shutil
from typing import Protocol

from .config import Settings
from .models import Language, Project

PACKAGE_MANIFEST = "package.json"
PYTHON_REQUIREMENTS = "requirements.txt"
DEFAULT_ENTRY_FILE = "index.js"


def resolve_executable(name: str) -> str:
    """Full path of an executable when it is on PATH, else the name as given."""
    return shutil.which(name) or name


def find_main_file(project: Project) -> str:
    """First file whose name contains "index" or "main", else the first file."""
    for file in project.files:
        if "index" in file.name or "main" in file.name:
            return file.path
    if project.files:
        return project.files[0].path
    return DEFAULT_ENTRY_FILE


def has_file(project: Project, name: str) -> bool:
    return (Path(project.path) / name).is_file()


class ProjectRunner(Protocol):
    """Builds the commands used to install and launch a project."""

    def install_command(self, project: Project) -> list[str] | None:
        """Dependency install command, or None when there is nothing to install."""
        ...

    def launch_command(self, project: Project) -> list[str]:
        """Command for the long-running project process."""
        ...

    def skip_reason(self, project: Project) -> str:
        """Message reported when install_command returns None."""
        ...


@dataclass
class NodeRunner:
    """JavaScript projects: npm when a manifest exists, plain node otherwise."""

    node: str = "node"
    npm: str = "npm"

    def install_command(self, project: Project) -> list[str] | None:
        if not has_file(project, PACKAGE_MANIFEST):
            return None
        return [resolve_executable(self.npm), "install"]

    def launch_command(self, project: Project) -> list[str]:
        if has_file(project, PACKAGE_MANIFEST):
            return [resolve_executable(self.npm), "start"]
        return [resolve_executable(self.node), find_main_file(project)]

    def skip_reason(self, project: Project) -> str:
        return f"No {PACKAGE_MANIFEST} found, skipping dependency install"


@dataclass
class DenoRunner:
    """TypeScript projects run under deno; dependencies still come from npm."""

    deno: str = "deno"
    npm: str = "npm"
    entry: str = "index.ts"

    def install_command(self, project: Project) -> list[str] | None:
        if not has_file(project, PACKAGE_MANIFEST):
            return None
        return [resolve_executable(self.npm), "install"]

    def launch_command(self, project: Project) -> list[str]:
        return [resolve_executable(self.deno), "run", "--allow-net", self.entry]

    def skip_reason(self, project: Project) -> str:
        return f"No {PACKAGE_MANIFEST} found, skipping dependency install"


@dataclass
class PythonRunner:
    python: str = "python"
    pip: str = "pip"
    entry: str = "main.py"

    def install_command(self, project: Project) -> list[str] | None:
        if not has_file(project, PYTHON_REQUIREMENTS):
            return None
        return [resolve_executable(self.pip), "install", "-r", PYTHON_REQUIREMENTS]

    def launch_command(self, project: Project) -> list[str]:
        return [resolve_executable(self.python), self.entry]

    def skip_reason(self, project: Project) -> str:
        return f"No {PYTHON_REQUIREMENTS} found"


@dataclass
class FallbackRunner:
    """Anything else: no install step, try the main file with node."""

    node: str = "node"

    def install_command(self, project: Project) -> list[str] | None:
        return None

    def launch_command(self, project: Project) -> list[str]:
        return [resolve_executable(self.node), find_main_file(project)]

    def skip_reason(self, project: Project) -> str:
        return f"No build step for {project.language.value} projects"


def get_runner(language: Language, settings: Settings) -> ProjectRunner:
    if language == Language.JAVASCRIPT:
        return NodeRunner(node=settings.node_command, npm=settings.npm_command)
    if language == Language.TYPESCRIPT:
        return DenoRunner(deno=settings.deno_command, npm=settings.npm_command)
    if language == Language.PYTHON:
        return PythonRunner(python=settings.python_command, pip=settings.pip_command)
    return FallbackRunner(node=settings.node_command)
