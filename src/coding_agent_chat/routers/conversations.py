"""Conversations router."""

from fastapi import APIRouter, Depends

from ..conversations import ConversationStore
from ..dependencies import bind_log_context, get_conversations
from ..models import Conversation
from ..schemas import ConversationCreated, ErrorResponse

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    dependencies=[Depends(bind_log_context)],
    responses={404: {"model": ErrorResponse}},
)


@router.get("", response_model=list[Conversation])
async def list_conversations(
    conversations: ConversationStore = Depends(get_conversations),
) -> list[Conversation]:
    """List conversations, most recent first."""
    return conversations.list_conversations()


@router.post("", response_model=ConversationCreated)
async def create_conversation(
    conversations: ConversationStore = Depends(get_conversations),
) -> ConversationCreated:
    """Start an empty conversation."""
    return ConversationCreated(conversation=conversations.create())


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: str,
    conversations: ConversationStore = Depends(get_conversations),
) -> Conversation:
    return conversations.get(conversation_id)
