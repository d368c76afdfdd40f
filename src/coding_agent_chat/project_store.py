"""In-memory project registry mirrored to one directory per project.

The store is the single owner of project and file state. Runtime fields
(``status``, ``port``, ``last_output``) are shared with the process
supervisor, which writes them only through ``set_runtime_state`` and
``append_output`` so every field keeps a single write path.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path, PurePosixPath, PureWindowsPath
import re
import shutil

import structlog

from .errors import BinaryFileError, NotFoundError, UnsafePathError
from .models import Language, Project, ProjectFile, ProjectStatus, generate_id

logger = structlog.get_logger()

DEFAULT_PROJECT_NAME = "new-project"
NAME_WORDS = 3

# Highest priority first; projects with none of these default to javascript
_LANGUAGE_PRIORITY = (Language.TYPESCRIPT, Language.JAVASCRIPT, Language.PYTHON)


def derive_project_name(prompt: str) -> str:
    """Slug from the first words of the prompt, e.g. "counter-app"."""
    name = "-".join(prompt.split()[:NAME_WORDS]).lower()
    name = re.sub(r"[^a-z0-9-]", "", name)
    return name or DEFAULT_PROJECT_NAME


def detect_primary_language(files: Iterable[ProjectFile]) -> Language:
    present = {f.language for f in files}
    for language in _LANGUAGE_PRIORITY:
        if language in present:
            return language
    return Language.JAVASCRIPT


def normalize_file_path(path: str) -> str:
    """Normalize a project-relative path or raise UnsafePathError.

    Backslashes become ``/`` and ``.``/empty segments are dropped. Absolute
    paths, drive letters and ``..`` segments are rejected.
    """
    cleaned = path.strip().replace("\\", "/")
    if cleaned.startswith("/") or PureWindowsPath(cleaned).drive:
        raise UnsafePathError(f"Absolute file paths are not allowed: {path}")

    parts = [part for part in cleaned.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise UnsafePathError(f"File path escapes the project root: {path}")
    if not parts:
        raise UnsafePathError("File path is empty")
    return "/".join(parts)


def _write_text(target: Path, content: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def _read_text(target: Path) -> str:
    with open(target, encoding="utf-8", newline="") as f:
        return f.read()


class ProjectStore:
    """Registry of projects, most recently created first.

    Locking: ``_lock`` guards the listing; one lock per project serializes
    file-list mutations together with their disk writes, so concurrent edits
    of disjoint paths are all kept and edits of the same path are
    last-writer-wins.
    """

    def __init__(self, projects_root: Path, remove_dirs_on_delete: bool = False) -> None:
        self.projects_root = Path(projects_root)
        self.remove_dirs_on_delete = remove_dirs_on_delete
        self._projects: list[Project] = []
        self._lock = asyncio.Lock()
        self._project_locks: dict[str, asyncio.Lock] = {}

    # === Queries ===

    def list_projects(self) -> list[Project]:
        return list(self._projects)

    def find(self, project_id: str) -> Project | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def get(self, project_id: str) -> Project:
        project = self.find(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    # === Materialization ===

    async def create_or_update(
        self,
        files: list[ProjectFile],
        prompt: str,
        existing: Project | None = None,
    ) -> Project:
        """Materialize parsed files into a new or an existing project."""
        if existing is not None:
            return await self._update_project(existing, files)
        return await self._create_project(files, prompt)

    async def _create_project(self, files: list[ProjectFile], prompt: str) -> Project:
        project_id = generate_id()
        root = self.projects_root / project_id

        try:
            await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            logger.error("project_dir_create_failed", path=str(root), error=str(e))
            raise

        project = Project(
            id=project_id,
            name=derive_project_name(prompt),
            description=f"Project generated from: {prompt}",
            path=str(root),
        )

        async with self._lock_for(project_id):
            for file in files:
                await self._apply_file(project, file)
            project.language = detect_primary_language(project.files)

        async with self._lock:
            self._projects.insert(0, project)

        logger.info(
            "project_created",
            project_id=project.id,
            name=project.name,
            language=project.language.value,
            file_count=len(project.files),
        )
        return project

    async def _update_project(self, project: Project, files: list[ProjectFile]) -> Project:
        if self.find(project.id) is None:
            raise NotFoundError("Project not found")

        logger.info("updating_project", project_id=project.id, name=project.name)
        async with self._lock_for(project.id):
            for file in files:
                await self._apply_file(project, file)
        return project

    async def _apply_file(self, project: Project, file: ProjectFile) -> None:
        """Upsert one file by path and write it; caller holds the project lock."""
        try:
            rel_path = normalize_file_path(file.path)
            target = self._resolve(project, rel_path)
        except UnsafePathError as e:
            logger.warning(
                "unsafe_file_path_skipped",
                project_id=project.id,
                path=file.path,
                error=str(e),
            )
            return

        file = file.model_copy(update={"path": rel_path, "name": PurePosixPath(rel_path).name})
        for index, current in enumerate(project.files):
            if current.path == rel_path:
                project.files[index] = file
                break
        else:
            project.files.append(file)

        try:
            await asyncio.to_thread(_write_text, target, file.content)
        except OSError as e:
            # Keep going: files written so far stay usable
            logger.error(
                "file_write_failed",
                project_id=project.id,
                path=rel_path,
                error=str(e),
            )
            return
        logger.debug("file_written", project_id=project.id, path=rel_path)

    # === Direct file access ===

    async def get_file(self, project_id: str, path: str) -> str:
        project = self.get(project_id)
        rel_path = normalize_file_path(path)
        target = self._resolve(project, rel_path)

        try:
            content = await asyncio.to_thread(_read_text, target)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise NotFoundError(f"File not found: {path}") from e
        except UnicodeDecodeError as e:
            raise BinaryFileError(f"File is not UTF-8 text: {path}") from e

        project.current_file = rel_path
        return content

    async def update_file(self, project_id: str, path: str, content: str) -> None:
        """Write a file and refresh the in-memory copy if it is tracked.

        A path that is not in ``project.files`` is still written to disk but
        is not added to the file list.
        """
        project = self.get(project_id)
        rel_path = normalize_file_path(path)
        target = self._resolve(project, rel_path)

        async with self._lock_for(project_id):
            await asyncio.to_thread(_write_text, target, content)

            tracked = project.find_file(rel_path)
            if tracked is not None:
                tracked.content = content
            else:
                logger.info("untracked_file_written", project_id=project_id, path=rel_path)

        project.current_file = rel_path
        logger.info("file_updated", project_id=project_id, path=rel_path)

    # === Deletion ===

    async def delete(
        self,
        project_id: str,
        stop_process: Callable[[str], Awaitable[object]] | None = None,
    ) -> Project | None:
        """Remove a project from the listing, then best-effort stop its process.

        Unknown ids are a no-op. Stop failures are logged, never raised.
        """
        async with self._lock:
            project = self.find(project_id)
            if project is None:
                logger.info("delete_unknown_project", project_id=project_id)
                return None
            self._projects.remove(project)
        self._project_locks.pop(project_id, None)

        if stop_process is not None:
            try:
                await stop_process(project_id)
            except Exception as e:
                logger.warning(
                    "project_stop_on_delete_failed",
                    project_id=project_id,
                    error=str(e),
                )

        if self.remove_dirs_on_delete:
            await asyncio.to_thread(shutil.rmtree, project.path, ignore_errors=True)

        logger.info("project_deleted", project_id=project_id, name=project.name)
        return project

    # === Runtime state (written by supervisor and orchestrator) ===

    def set_runtime_state(
        self,
        project_id: str,
        status: ProjectStatus,
        port: int | None = None,
    ) -> Project | None:
        """Set status, and port when given. Returns None for unknown ids."""
        project = self.find(project_id)
        if project is None:
            logger.debug("runtime_state_for_unknown_project", project_id=project_id)
            return None

        project.status = status
        if port is not None:
            project.port = port
        return project

    def append_output(self, project_id: str, text: str) -> None:
        project = self.find(project_id)
        if project is None or not text:
            return
        project.last_output = (project.last_output or "") + text

    def reset(self) -> None:
        self._projects.clear()
        self._project_locks.clear()

    # === Helpers ===

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._project_locks.get(project_id)
        if lock is None:
            lock = self._project_locks[project_id] = asyncio.Lock()
        return lock

    def _resolve(self, project: Project, rel_path: str) -> Path:
        root = Path(project.path).resolve()
        target = (root / rel_path).resolve()
        if not target.is_relative_to(root):
            raise UnsafePathError(f"File path escapes the project root: {rel_path}")
        return target
