"""In-memory conversation history."""

import structlog

from .errors import NotFoundError
from .models import Conversation, Message

logger = structlog.get_logger()


class ConversationStore:
    """Conversations, most recently created first."""

    def __init__(self) -> None:
        self._conversations: list[Conversation] = []
        self.current_id: str | None = None

    def list_conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def create(self) -> Conversation:
        """Start a conversation and make it the current one."""
        conversation = Conversation()
        self._conversations.insert(0, conversation)
        self.current_id = conversation.id
        logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    def find(self, conversation_id: str | None) -> Conversation | None:
        if not conversation_id:
            return None
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def get(self, conversation_id: str) -> Conversation:
        conversation = self.find(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def get_or_create(self, conversation_id: str | None) -> Conversation:
        """Existing conversation, or a new one when the id is missing or unknown."""
        conversation = self.find(conversation_id)
        if conversation is None:
            conversation = Conversation()
            self._conversations.insert(0, conversation)
            logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    def append(self, conversation: Conversation, *messages: Message) -> None:
        conversation.messages.extend(messages)

    def reset(self) -> None:
        self._conversations.clear()
        self.current_id = None
