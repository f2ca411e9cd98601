"""
Interfaces of the collaborators the chat orchestrator depends on.

Concrete implementations live next to this module:
- in_memory.py: conversation store, room inventory and booking domain kept in
  process memory (development and tests)
- redis_store.py: conversation store backed by Redis
- llm_backend.py: OpenRouter chat completions through langchain-openai
- web_search.py: Tavily search over httpx
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from agent.fsm.models import PersonalData

if TYPE_CHECKING:
    from agent.state.schemas import ConversationHistory


# ============================================================================
# Data shapes
# ============================================================================


@dataclass(frozen=True)
class RoomType:
    id: int
    title: str
    description: str
    adult_capacity: int
    child_capacity: int
    bed_count: int
    nightly_price: Decimal
    active: bool = True


@dataclass(frozen=True)
class Room:
    id: int
    room_type_id: int
    number: str


@dataclass(frozen=True)
class ReservationRequest:
    check_in: date
    check_out: date
    adults: int
    children: int
    room: Room
    personal_data: PersonalData
    nights: int
    total: Decimal


@dataclass(frozen=True)
class CreatedReservation:
    id: int
    client_id: int
    person_id: int
    room_id: int
    total: Decimal
    status: str = "Pendiente"


@dataclass(frozen=True)
class LLMReply:
    content: str
    tokens_used: int = 0
    model: str = ""


@dataclass(frozen=True)
class SearchResult:
    title: str
    content: str
    url: str


@dataclass
class SearchResponse:
    query: str
    results: list[SearchResult] = field(default_factory=list)


# ============================================================================
# Collaborator protocols
# ============================================================================


class ConversationStore(Protocol):
    async def save(self, conversation: "ConversationHistory") -> None: ...

    async def get(self, conversation_id: str) -> "ConversationHistory | None": ...

    async def update(self, conversation: "ConversationHistory") -> None: ...

    async def save_message(self, client_id: int, role: str, content: str) -> None: ...

    async def list_by_client(self, client_id: int) -> "list[ConversationHistory]": ...


class RoomInventory(Protocol):
    async def list_room_types(self) -> list[RoomType]: ...

    async def list_available_room_types(self, check_in: date, check_out: date) -> list[RoomType]: ...

    async def get_room_type(self, room_type_id: int) -> RoomType | None: ...

    async def find_available_room(
        self, room_type_id: int, check_in: date, check_out: date
    ) -> Room | None: ...


class BookingDomain(Protocol):
    async def create_reservation(self, request: ReservationRequest) -> CreatedReservation: ...


class GenerativeBackend(Protocol):
    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> LLMReply: ...


class SearchProvider(Protocol):
    async def search(self, query: str, max_results: int = 3) -> SearchResponse: ...
