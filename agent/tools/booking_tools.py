"""
Booking tools exposed to the assistant.

Four tools, each a thin validated adapter over the room inventory and booking
domain collaborators:
1. list_room_types - every active room type with price and capacity
2. check_availability - room types with a free room for a date range
3. calculate_price - nightly price × nights breakdown
4. create_reservation - guest resolution + reservation with room assignment

Domain failures raise ToolError subclasses; the protocol handler renders them
inline in the assistant text.
"""

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from agent.errors import (
    InvalidDateError,
    InvalidGuestCountError,
    InvalidToolArgumentsError,
    NoRoomAvailableError,
    PastCheckInError,
    RoomTypeNotFoundError,
)
from agent.fsm.models import PersonalData
from agent.services.collaborators import (
    BookingDomain,
    ReservationRequest,
    RoomInventory,
    RoomType,
)
from agent.tools.registry import EmptyArgs, Tool, ToolOutput, ToolRegistry
from agent.utils.date_parser import DateParseError, calculate_nights, parse_iso_date, today_in

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Schemas
# ============================================================================


class DateRangeArgs(BaseModel):
    """Schema for check_availability."""

    model_config = ConfigDict(populate_by_name=True)

    check_in: str = Field(alias="fechaEntrada", description="Fecha de entrada (YYYY-MM-DD)")
    check_out: str = Field(alias="fechaSalida", description="Fecha de salida (YYYY-MM-DD)")


class PriceArgs(DateRangeArgs):
    """Schema for calculate_price."""

    room_type_id: int = Field(alias="tipoHabitacionId", description="ID del tipo de habitación")


class CreateReservationArgs(DateRangeArgs):
    """Schema for create_reservation."""

    room_type_id: int = Field(alias="tipoHabitacionId", description="ID del tipo de habitación")
    adults: int = Field(alias="cantidadAdultos", description="Número de adultos (mínimo 1)")
    children: int = Field(default=0, alias="cantidadNinhos", description="Número de niños")
    personal_data: PersonalData = Field(
        alias="personalData",
        description=(
            "Datos del huésped: nombre, primerApellido, segundoApellido, numeroDocumento, "
            "genero, correo, telefono1, telefono2, ciudadReferencia, paisReferencia"
        ),
    )


def _parse_date(value: str, label: str) -> date:
    try:
        return parse_iso_date(value)
    except DateParseError as e:
        raise InvalidDateError(f"{label}: {e}") from e


def _parse_range(args: DateRangeArgs) -> tuple[date, date]:
    return (
        _parse_date(args.check_in, "fechaEntrada"),
        _parse_date(args.check_out, "fechaSalida"),
    )


def _format_room_type(room_type: RoomType, marker: str = "•") -> str:
    return (
        f"{marker} {room_type.title} (ID: {room_type.id})\n"
        f"   Precio: S/{room_type.nightly_price:.2f} por noche\n"
        f"   Capacidad: {room_type.adult_capacity} adultos, {room_type.child_capacity} niños\n"
        f"   Camas: {room_type.bed_count}\n"
        f"   {room_type.description}"
    )


class BookingTools:
    """Handlers for the booking tools, bound to their collaborators."""

    def __init__(
        self,
        inventory: RoomInventory,
        booking: BookingDomain,
        today: Callable[[], date] = today_in,
    ):
        self.inventory = inventory
        self.booking = booking
        self.today = today

    async def list_room_types(self, args: EmptyArgs) -> ToolOutput:
        room_types = [room for room in await self.inventory.list_room_types() if room.active]
        if not room_types:
            return ToolOutput(text="No hay tipos de habitación registrados en este momento.")

        lines = ["Tipos de Habitaciones Disponibles:", ""]
        for room_type in room_types:
            lines.append(_format_room_type(room_type))
            lines.append("")
        return ToolOutput(
            text="\n".join(lines).rstrip(),
            data={"room_type_ids": [room.id for room in room_types]},
        )

    async def check_availability(self, args: DateRangeArgs) -> ToolOutput:
        check_in, check_out = _parse_range(args)
        if check_out <= check_in:
            raise InvalidDateError("la fecha de salida debe ser posterior a la fecha de entrada")

        available = await self.inventory.list_available_room_types(check_in, check_out)
        if not available:
            return ToolOutput(
                text=f"No hay habitaciones disponibles para las fechas {check_in} a {check_out}",
                data={"room_type_ids": []},
            )

        lines = [f"Habitaciones disponibles para {check_in} - {check_out}:", ""]
        for room_type in available:
            lines.append(_format_room_type(room_type, marker="✅"))
            lines.append("")
        return ToolOutput(
            text="\n".join(lines).rstrip(),
            data={"room_type_ids": [room.id for room in available]},
        )

    async def calculate_price(self, args: PriceArgs) -> ToolOutput:
        check_in, check_out = _parse_range(args)

        room_type = await self.inventory.get_room_type(args.room_type_id)
        if room_type is None:
            raise RoomTypeNotFoundError(args.room_type_id)

        nights = calculate_nights(check_in, check_out)
        total = room_type.nightly_price * nights

        return ToolOutput(
            text=(
                "Cálculo de Precio:\n\n"
                f"Habitación: {room_type.title}\n"
                f"Precio por noche: S/{room_type.nightly_price:.2f}\n"
                f"Número de noches: {nights}\n"
                f"Total: S/{total:.2f}"
            ),
            data={"nights": nights, "total": str(total)},
        )

    async def create_reservation(self, args: CreateReservationArgs) -> ToolOutput:
        check_in, check_out = _parse_range(args)

        if args.adults < 1:
            raise InvalidGuestCountError("debe haber al menos 1 adulto en la reserva")
        if args.children < 0:
            raise InvalidGuestCountError("la cantidad de niños no puede ser negativa")
        if args.room_type_id < 1:
            raise InvalidToolArgumentsError("tipoHabitacionId debe ser un ID válido (mayor que 0)")
        if check_in < self.today():
            raise PastCheckInError(f"la fecha de entrada {check_in} ya pasó")
        if check_out <= check_in:
            raise InvalidDateError("la fecha de salida debe ser posterior a la fecha de entrada")

        room_type = await self.inventory.get_room_type(args.room_type_id)
        if room_type is None:
            raise RoomTypeNotFoundError(args.room_type_id)

        room = await self.inventory.find_available_room(args.room_type_id, check_in, check_out)
        if room is None:
            raise NoRoomAvailableError(
                f"no hay habitaciones de tipo {room_type.title} disponibles "
                f"del {check_in} al {check_out}"
            )

        nights = calculate_nights(check_in, check_out)
        total: Decimal = room_type.nightly_price * nights

        created = await self.booking.create_reservation(
            ReservationRequest(
                check_in=check_in,
                check_out=check_out,
                adults=args.adults,
                children=args.children,
                room=room,
                personal_data=args.personal_data,
                nights=nights,
                total=total,
            )
        )

        logger.info(
            f"Reservation created | reservation_id={created.id} | "
            f"room_id={room.id} | nights={nights} | total={total:.2f}",
            extra={"client_id": created.client_id, "tool_name": "create_reservation"},
        )

        guest = args.personal_data
        return ToolOutput(
            text=(
                "✅ Reserva creada exitosamente!\n\n"
                f"Número de Reserva: #{created.id}\n"
                f"Cliente: {guest.full_name}\n"
                f"Email: {guest.email}\n"
                f"Tipo de Habitación: {room_type.title}\n"
                f"Check-in: {check_in}\n"
                f"Check-out: {check_out}\n"
                f"Noches: {nights}\n"
                f"Adultos: {args.adults}\n"
                f"Niños: {args.children}\n"
                f"Total: S/{created.total:.2f}\n"
                f"Estado: {created.status}"
            ),
            data={"reservation_id": created.id, "client_id": created.client_id},
        )


def create_booking_registry(
    inventory: RoomInventory,
    booking: BookingDomain,
    today: Callable[[], date] = today_in,
) -> ToolRegistry:
    """Build the registry with the four booking tools."""
    tools = BookingTools(inventory, booking, today)
    registry = ToolRegistry()

    registry.register(Tool(
        name="list_room_types",
        description="Lista todos los tipos de habitación con precio, capacidad, camas y descripción.",
        args_schema=EmptyArgs,
        handler=tools.list_room_types,
    ))
    registry.register(Tool(
        name="check_availability",
        description="Consulta qué tipos de habitación tienen disponibilidad para un rango de fechas.",
        args_schema=DateRangeArgs,
        handler=tools.check_availability,
        example={"fechaEntrada": "2025-12-10", "fechaSalida": "2025-12-15"},
    ))
    registry.register(Tool(
        name="calculate_price",
        description="Calcula el precio total de una estadía para un tipo de habitación.",
        args_schema=PriceArgs,
        handler=tools.calculate_price,
        example={"tipoHabitacionId": 5, "fechaEntrada": "2025-12-10", "fechaSalida": "2025-12-15"},
    ))
    registry.register(Tool(
        name="create_reservation",
        description=(
            "Crea la reserva definitiva. Úsala SOLO cuando el huésped haya confirmado "
            "fechas, número de huéspedes, tipo de habitación y sus datos personales."
        ),
        args_schema=CreateReservationArgs,
        handler=tools.create_reservation,
        example={
            "fechaEntrada": "2025-12-10",
            "fechaSalida": "2025-12-15",
            "cantidadAdultos": 2,
            "cantidadNinhos": 0,
            "tipoHabitacionId": 5,
            "personalData": {
                "nombre": "Juan",
                "primerApellido": "Pérez",
                "segundoApellido": "García",
                "numeroDocumento": "12345678",
                "genero": "M",
                "correo": "juan@example.com",
                "telefono1": "987654321",
            },
        },
    ))
    return registry
