"""Chat turn coordination: prompt the agent, materialize its files."""

import asyncio
from dataclasses import dataclass

import structlog

from .agent_client import AgentCapability
from .conversations import ConversationStore
from .errors import InvalidRequestError, UpstreamError
from .models import Message, MessageRole, Project, ProjectStatus
from .project_store import ProjectStore
from .response_parser import ResponseParser

logger = structlog.get_logger()

RESPONSE_INSTRUCTIONS = """INSTRUCTIONS:
1. Understand the user's request in the context of their current project
2. If this is a code modification request, provide the updated files
3. Format code changes using markdown code blocks with file paths
4. If creating new files, include complete file content
5. If modifying existing files, show the entire updated file
6. Provide clear explanations of what you changed and why

RESPONSE FORMAT:
[Your response explaining the changes]

Files to update:

```[language]:[file path]
[complete file content]
```

```[language]:[file path]
[complete file content]
```

[Continue for all modified/created files]"""


def build_prompt(message: str, project: Project | None = None) -> str:
    """User request wrapped with project context and output format rules."""
    context = ""
    if project is not None:
        file_lines = "\n".join(f"- {f.path} ({f.language.value})" for f in project.files)
        context = (
            f"CURRENT PROJECT: {project.name}\n"
            f"PROJECT LANGUAGE: {project.language.value}\n"
            f"EXISTING FILES:\n{file_lines}\n\n"
        )
    return f"{context}USER REQUEST: {message}\n\n{RESPONSE_INSTRUCTIONS}"


@dataclass
class ChatResult:
    message: Message
    project: Project | None
    should_update: bool


class ChatCoordinator:
    """Runs one chat turn end to end.

    The agent stream is drained completely before anything is parsed or
    stored; a failed or timed out turn leaves the conversation unchanged.
    """

    def __init__(
        self,
        conversations: ConversationStore,
        store: ProjectStore,
        agent: AgentCapability | None,
        timeout: float = 180.0,
    ) -> None:
        self.conversations = conversations
        self.store = store
        self.agent = agent
        self.timeout = timeout

    async def chat(
        self,
        message: str,
        conversation_id: str | None = None,
        project_id: str | None = None,
    ) -> ChatResult:
        if not message or not message.strip():
            raise InvalidRequestError("Message is required")

        conversation = self.conversations.get_or_create(conversation_id)
        project = self.store.find(project_id) if project_id else None

        log = logger.bind(conversation_id=conversation.id, project_id=project_id)
        log.info("chat_turn_started", message_length=len(message))

        user_message = Message(role=MessageRole.USER, content=message)
        try:
            raw_response = await self._ask_agent(build_prompt(message, project))
        except UpstreamError as e:
            log.error("chat_turn_failed", error=str(e))
            if project is not None:
                self.store.set_runtime_state(project.id, ProjectStatus.ERROR)
            raise

        parsed = ResponseParser.parse(raw_response)
        if parsed.has_files:
            project = await self.store.create_or_update(parsed.files, message, project)

        assistant_message = Message(
            role=MessageRole.ASSISTANT,
            content=parsed.explanation,
            files=[f.path for f in parsed.files],
        )
        self.conversations.append(conversation, user_message, assistant_message)

        log.info(
            "chat_turn_completed",
            file_count=len(parsed.files),
            result_project_id=project.id if project else None,
        )
        return ChatResult(
            message=assistant_message,
            project=project,
            should_update=parsed.has_files,
        )

    async def _ask_agent(self, prompt: str) -> str:
        """Drain the agent stream in order into one string."""
        if self.agent is None:
            raise UpstreamError("Coding agent not initialized: ANTHROPIC_API_KEY is not set")

        chunks: list[str] = []
        try:
            async with asyncio.timeout(self.timeout):
                async for chunk in self.agent.stream_text(prompt):
                    chunks.append(chunk)
        except TimeoutError as e:
            raise UpstreamError(f"Agent did not respond within {self.timeout:g}s") from e
        return "".join(chunks)
