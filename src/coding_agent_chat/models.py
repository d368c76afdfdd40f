"""Domain models for projects and conversations.

Models serialize with camelCase aliases (``createdAt``, ``lastOutput``) to
match the JSON the UI consumes.
"""

from datetime import UTC, datetime
from enum import Enum
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    """Short opaque identifier for projects, conversations and messages."""
    return uuid.uuid4().hex[:12]


def utc_now() -> datetime:
    return datetime.now(UTC)


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Language(str, Enum):
    """Normalized language tags for files and projects."""

    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JSON = "json"
    HTML = "html"
    CSS = "css"
    MARKDOWN = "markdown"
    TEXT = "text"


class ProjectStatus(str, Enum):
    """Lifecycle states of a project."""

    CREATED = "created"
    BUILDING = "building"
    RUNNING = "running"
    ERROR = "error"
    STOPPED = "stopped"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ProjectFile(CamelModel):
    """One file of a project; identity is ``path`` within the project."""

    name: str = Field(..., description="Basename of the file")
    path: str = Field(..., description="Path relative to the project root")
    content: str
    language: Language = Language.TEXT


class Project(CamelModel):
    """A generated project with its own directory and run lifecycle.

    ``status``, ``port`` and ``last_output`` are runtime fields. They are
    written by the process supervisor and orchestrator only through
    ``ProjectStore.set_runtime_state`` and ``ProjectStore.append_output``.
    """

    id: str = Field(default_factory=generate_id)
    name: str
    description: str = ""
    language: Language = Language.JAVASCRIPT
    status: ProjectStatus = ProjectStatus.CREATED
    created_at: datetime = Field(default_factory=utc_now)
    path: str = Field(..., description="Project root directory")
    files: list[ProjectFile] = Field(default_factory=list)
    current_file: str | None = None
    last_output: str | None = None
    port: int | None = None

    def find_file(self, path: str) -> ProjectFile | None:
        for file in self.files:
            if file.path == path:
                return file
        return None


class Message(CamelModel):
    id: str = Field(default_factory=generate_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    files: list[str] | None = Field(
        default=None,
        description="Paths touched by an assistant reply",
    )


class Conversation(CamelModel):
    id: str = Field(default_factory=generate_id)
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
