"""Chat router."""

from fastapi import APIRouter, Depends

from ..chat import ChatCoordinator
from ..dependencies import get_chat
from ..errors import InvalidRequestError
from ..schemas import ChatRequest, ChatResponse, ErrorResponse

router = APIRouter(
    tags=["chat"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    coordinator: ChatCoordinator = Depends(get_chat),
) -> ChatResponse:
    """Send a message to the coding agent and apply any files it returns."""
    if not body.message:
        raise InvalidRequestError("Message is required")

    result = await coordinator.chat(
        body.message,
        conversation_id=body.conversation_id,
        project_id=body.project_id,
    )
    return ChatResponse(
        message=result.message,
        project=result.project,
        should_update=result.should_update,
    )
