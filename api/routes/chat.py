"""
Chat endpoints used by the hotel website widget.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from agent.errors import ConversationStoreError
from agent.orchestrator import ChatOrchestrator
from agent.state.schemas import ChatRequest, ChatResponse
from api.dependencies import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
    request: ChatRequest,
    orchestrator: Annotated[ChatOrchestrator, Depends(get_orchestrator)],
) -> ChatResponse:
    """
    Process one chat turn.

    The response always carries a message, even when the generative backend
    is down or the sender is throttled.
    """
    return await orchestrator.process_message(request)


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    orchestrator: Annotated[ChatOrchestrator, Depends(get_orchestrator)],
):
    try:
        conversation = await orchestrator.get_conversation_history(conversation_id)
    except ConversationStoreError as e:
        logger.error(f"Error loading conversation: {e}", extra={"conversation_id": conversation_id})
        raise HTTPException(status_code=503, detail="Conversation store unavailable") from e

    if conversation is None:
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")
    return conversation.model_dump(mode="json", by_alias=True)


@router.get("/clients/{client_id}/conversations")
async def list_client_conversations(
    client_id: int,
    orchestrator: Annotated[ChatOrchestrator, Depends(get_orchestrator)],
):
    try:
        conversations = await orchestrator.get_client_conversations(client_id)
    except ConversationStoreError as e:
        logger.error(f"Error listing conversations: {e}", extra={"client_id": client_id})
        raise HTTPException(status_code=503, detail="Conversation store unavailable") from e

    return {
        "clientId": client_id,
        "conversations": [
            conversation.model_dump(mode="json", by_alias=True) for conversation in conversations
        ],
        "total": len(conversations),
    }
