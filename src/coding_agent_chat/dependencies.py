"""FastAPI dependencies exposing the application container."""

from fastapi import Depends, Request
import structlog

from .chat import ChatCoordinator
from .container import AppContainer
from .conversations import ConversationStore
from .logging_config import LOG_CONTEXT_PARAMS
from .orchestrator import ProjectOrchestrator
from .project_store import ProjectStore


async def bind_log_context(request: Request) -> None:
    """Add project/conversation ids from the path to every log line of the request."""
    params = request.path_params
    ids = {name: params[name] for name in LOG_CONTEXT_PARAMS if name in params}
    if ids:
        structlog.contextvars.bind_contextvars(**ids)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_projects(container: AppContainer = Depends(get_container)) -> ProjectStore:
    return container.projects


def get_conversations(container: AppContainer = Depends(get_container)) -> ConversationStore:
    return container.conversations


def get_orchestrator(container: AppContainer = Depends(get_container)) -> ProjectOrchestrator:
    return container.orchestrator


def get_chat(container: AppContainer = Depends(get_container)) -> ChatCoordinator:
    return container.chat
