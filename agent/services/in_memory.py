"""
In-memory collaborators.

- InMemoryConversationStore: conversations and per-client message log
- InMemoryHotel: room inventory and booking domain over one lock, so the
  availability re-check and the reservation write are a single atomic step

Used by the API when no database-backed implementation is configured, and by
the test suite.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from agent.errors import NoRoomAvailableError
from agent.fsm.models import PersonalData
from agent.services.collaborators import (
    CreatedReservation,
    ReservationRequest,
    Room,
    RoomType,
)
from agent.state.schemas import ConversationHistory

logger = logging.getLogger(__name__)


class InMemoryConversationStore:
    """Conversation store keeping deep copies, so callers never share state with it."""

    def __init__(self) -> None:
        self._conversations: dict[str, ConversationHistory] = {}
        self._message_log: dict[int, list[dict]] = {}

    async def save(self, conversation: ConversationHistory) -> None:
        self._conversations[conversation.id] = conversation.model_copy(deep=True)

    async def get(self, conversation_id: str) -> ConversationHistory | None:
        stored = self._conversations.get(conversation_id)
        return stored.model_copy(deep=True) if stored else None

    async def update(self, conversation: ConversationHistory) -> None:
        conversation.updated_at = datetime.now(UTC)
        self._conversations[conversation.id] = conversation.model_copy(deep=True)

    async def save_message(self, client_id: int, role: str, content: str) -> None:
        self._message_log.setdefault(client_id, []).append({
            "role": role,
            "content": content,
            "timestamp": datetime.now(UTC).isoformat(),
        })

    async def list_by_client(self, client_id: int) -> list[ConversationHistory]:
        conversations = [
            conversation.model_copy(deep=True)
            for conversation in self._conversations.values()
            if conversation.client_id == client_id
        ]
        return sorted(conversations, key=lambda conversation: conversation.updated_at, reverse=True)

    def message_log(self, client_id: int) -> list[dict]:
        return list(self._message_log.get(client_id, []))


@dataclass(frozen=True)
class _Stay:
    reservation_id: int
    room_id: int
    check_in: date
    check_out: date

    def overlaps(self, check_in: date, check_out: date) -> bool:
        return self.check_in < check_out and check_in < self.check_out


@dataclass(frozen=True)
class StoredReservation:
    id: int
    client_id: int
    room_id: int
    check_in: date
    check_out: date
    adults: int
    children: int
    nights: int
    total: Decimal
    status: str


class InMemoryHotel:
    """
    Room inventory and booking domain.

    Guests are resolved by document number and accounts by guest; both are
    created on first reservation. Reservation, guest, account and room
    assignment become visible together or not at all.
    """

    def __init__(self, room_types: list[RoomType], rooms: list[Room]):
        self._room_types = {room_type.id: room_type for room_type in room_types}
        self._rooms = list(rooms)
        self._stays: list[_Stay] = []
        self._persons: dict[str, tuple[int, PersonalData]] = {}
        self._clients: dict[int, int] = {}
        self.reservations: dict[int, StoredReservation] = {}
        self._next_id = {"person": 1, "client": 1, "reservation": 1}
        self._lock = asyncio.Lock()

    # RoomInventory

    async def list_room_types(self) -> list[RoomType]:
        return sorted(self._room_types.values(), key=lambda room_type: room_type.id)

    async def get_room_type(self, room_type_id: int) -> RoomType | None:
        return self._room_types.get(room_type_id)

    async def list_available_room_types(self, check_in: date, check_out: date) -> list[RoomType]:
        async with self._lock:
            available_type_ids = {
                room.room_type_id
                for room in self._rooms
                if self._is_free(room.id, check_in, check_out)
            }
        return [
            room_type
            for room_type in await self.list_room_types()
            if room_type.active and room_type.id in available_type_ids
        ]

    async def find_available_room(
        self, room_type_id: int, check_in: date, check_out: date
    ) -> Room | None:
        async with self._lock:
            return self._first_free_room(room_type_id, check_in, check_out)

    # BookingDomain

    async def create_reservation(self, request: ReservationRequest) -> CreatedReservation:
        async with self._lock:
            if not self._is_free(request.room.id, request.check_in, request.check_out):
                raise NoRoomAvailableError(
                    f"la habitación {request.room.number} ya no está disponible "
                    f"del {request.check_in} al {request.check_out}"
                )

            document = request.personal_data.document_number
            person_id, new_person = self._resolve_person(document)
            client_id, new_client = self._resolve_client(person_id)
            reservation_id = self._next_id["reservation"]

            # Commit point: everything below only mutates in-memory maps
            if new_person:
                self._persons[document] = (person_id, request.personal_data)
                self._next_id["person"] += 1
            if new_client:
                self._clients[person_id] = client_id
                self._next_id["client"] += 1
            self._next_id["reservation"] += 1
            self._stays.append(
                _Stay(reservation_id, request.room.id, request.check_in, request.check_out)
            )
            self.reservations[reservation_id] = StoredReservation(
                id=reservation_id,
                client_id=client_id,
                room_id=request.room.id,
                check_in=request.check_in,
                check_out=request.check_out,
                adults=request.adults,
                children=request.children,
                nights=request.nights,
                total=request.total,
                status="Pendiente",
            )

        logger.info(
            f"Reservation stored | reservation_id={reservation_id} | client_id={client_id} | "
            f"new_person={new_person} | new_client={new_client}"
        )
        return CreatedReservation(
            id=reservation_id,
            client_id=client_id,
            person_id=person_id,
            room_id=request.room.id,
            total=request.total,
        )

    def _resolve_person(self, document: str) -> tuple[int, bool]:
        existing = self._persons.get(document)
        if existing:
            return existing[0], False
        return self._next_id["person"], True

    def _resolve_client(self, person_id: int) -> tuple[int, bool]:
        if person_id in self._clients:
            return self._clients[person_id], False
        return self._next_id["client"], True

    def _is_free(self, room_id: int, check_in: date, check_out: date) -> bool:
        return not any(
            stay.room_id == room_id and stay.overlaps(check_in, check_out)
            for stay in self._stays
        )

    def _first_free_room(self, room_type_id: int, check_in: date, check_out: date) -> Room | None:
        for room in self._rooms:
            if room.room_type_id == room_type_id and self._is_free(room.id, check_in, check_out):
                return room
        return None


def default_room_types() -> list[RoomType]:
    """Catalog used when the API runs without an external inventory."""
    return [
        RoomType(1, "Habitación Simple", "Ideal para viajeros de negocios, con escritorio.", 1, 0, 1, Decimal("60.00")),
        RoomType(2, "Habitación Matrimonial", "Cama queen, perfecta para parejas.", 2, 1, 1, Decimal("80.00")),
        RoomType(3, "Habitación Familiar", "Amplia, con sala de estar y dos ambientes.", 4, 2, 3, Decimal("150.00")),
        RoomType(4, "Habitación Triple", "Tres camas individuales.", 3, 0, 3, Decimal("110.00")),
        RoomType(5, "Habitación Doble", "Dos camas de plaza y media.", 2, 1, 2, Decimal("90.00")),
        RoomType(6, "Suite Presidencial", "Jacuzzi, sala privada y vista a la ciudad.", 2, 2, 1, Decimal("250.00")),
    ]


def default_rooms() -> list[Room]:
    rooms = []
    for room_type in default_room_types():
        for index in (1, 2):
            rooms.append(Room(
                id=room_type.id * 10 + index,
                room_type_id=room_type.id,
                number=f"{room_type.id}0{index}",
            ))
    return rooms
