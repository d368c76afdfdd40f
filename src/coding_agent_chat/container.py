"""Wiring of the long-lived application objects."""

from dataclasses import dataclass

import structlog

from .agent_client import AgentCapability, AnthropicAgentClient
from .chat import ChatCoordinator
from .config import Settings
from .conversations import ConversationStore
from .orchestrator import ProjectOrchestrator
from .process_supervisor import ProcessSupervisor
from .project_store import ProjectStore

logger = structlog.get_logger()


@dataclass
class AppContainer:
    """Registries and services shared by all requests of one application."""

    settings: Settings
    projects: ProjectStore
    conversations: ConversationStore
    supervisor: ProcessSupervisor
    orchestrator: ProjectOrchestrator
    chat: ChatCoordinator

    async def shutdown(self) -> None:
        await self.supervisor.stop_all()

    def reset(self) -> None:
        """Drop all in-memory state. Tests only; running processes are not stopped."""
        self.projects.reset()
        self.conversations.reset()
        self.supervisor.reset()


def create_agent(settings: Settings) -> AgentCapability | None:
    """Agent client from settings, or None when the API key is missing."""
    try:
        return AnthropicAgentClient(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            model=settings.agent_model,
            max_tokens=settings.agent_max_tokens,
            timeout=settings.agent_timeout_sec,
            max_retries=settings.agent_max_retries,
        )
    except ValueError as e:
        logger.error("agent_init_failed", error=str(e))
        return None


def build_container(settings: Settings, agent: AgentCapability | None = None) -> AppContainer:
    projects = ProjectStore(
        settings.projects_root,
        remove_dirs_on_delete=settings.remove_project_dirs_on_delete,
    )
    conversations = ConversationStore()
    supervisor = ProcessSupervisor(projects, settings)
    orchestrator = ProjectOrchestrator(projects, supervisor, settings)
    chat = ChatCoordinator(
        conversations,
        projects,
        agent if agent is not None else create_agent(settings),
        timeout=settings.agent_timeout_sec,
    )
    return AppContainer(
        settings=settings,
        projects=projects,
        conversations=conversations,
        supervisor=supervisor,
        orchestrator=orchestrator,
        chat=chat,
    )
