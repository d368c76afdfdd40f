"""Request and response bodies of the HTTP API."""

from .models import CamelModel, Conversation, Message, Project, ProjectStatus


class ChatRequest(CamelModel):
    # Optional here so a missing message gets the 400 "Message is required"
    message: str | None = None
    conversation_id: str | None = None
    project_id: str | None = None


class ChatResponse(CamelModel):
    success: bool = True
    message: Message
    project: Project | None = None
    should_update: bool


class ConversationCreated(CamelModel):
    success: bool = True
    conversation: Conversation


class FileUpdate(CamelModel):
    content: str


class FileContent(CamelModel):
    success: bool = True
    content: str


class SuccessResponse(CamelModel):
    success: bool = True


class ProjectsResponse(CamelModel):
    success: bool = True
    projects: list[Project]


class ProjectActionResponse(ProjectsResponse):
    output: str


class RunResponse(ProjectActionResponse):
    port: int | None = None


class ProjectOutput(CamelModel):
    success: bool = True
    output: str
    status: ProjectStatus
    port: int | None = None


class ErrorResponse(CamelModel):
    error: str
