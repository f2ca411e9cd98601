"""
Conversation and chat API schemas.

- ChatMessage / ConversationHistory: persisted conversation state
- ChatContext / ChatRequest: inbound chat turn
- ChatResponse: outbound reply with quick replies and metadata

Field aliases are the camelCase names of the JSON API (conversationId,
clienteId, suggestedActions, ...). Every model accepts both the alias and the
Python attribute name.
"""

from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from agent.fsm.models import ReservationInProgress


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ConversationHistory(BaseModel):
    """
    A conversation owned by the conversation store.

    Messages grow without bound in insertion order; the orchestrator only
    sends a trailing window of them to the generative backend.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    client_id: int | None = Field(default=None, alias="clienteId")
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="createdAt")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="updatedAt")
    reservation_in_progress: ReservationInProgress | None = Field(
        default=None, alias="reservationInProgress"
    )

    def add_message(self, role: Literal["user", "assistant"], content: str) -> None:
        self.messages.append(ChatMessage(role=role, content=content))
        self.updated_at = datetime.now(UTC)

    def recent_messages(self, limit: int = 10) -> list[ChatMessage]:
        return self.messages[-limit:]


class ChatContext(BaseModel):
    """Structured hints sent by the chat widget alongside the message."""

    model_config = ConfigDict(populate_by_name=True)

    check_in: str | None = Field(default=None, alias="fechaEntrada")
    check_out: str | None = Field(default=None, alias="fechaSalida")
    adults: int | None = Field(default=None, alias="cantidadAdultos")
    children: int | None = Field(default=None, alias="cantidadNinhos")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=2000)
    conversation_id: str | None = Field(default=None, alias="conversationId")
    client_id: int | None = Field(default=None, alias="clienteId")
    context: ChatContext | None = None
    use_web: bool | None = Field(default=None, alias="useWeb")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_id: str = Field(default="", alias="conversationId")
    suggested_actions: list[str] = Field(default_factory=list, alias="suggestedActions")
    requires_human: bool = Field(default=False, alias="requiresHuman")
    metadata: dict[str, Any] = Field(default_factory=dict)
    reservation_in_progress: ReservationInProgress | None = Field(
        default=None, alias="reservationInProgress"
    )
    reservation_created: int | None = Field(default=None, alias="reservationCreated")
