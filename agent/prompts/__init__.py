"""
Prompt assembly for the hotel booking assistant.

The system prompt for every generative call is built from:
- the static instructions in hotel_system_prompt.md
- a live inventory snapshot (room types, near-term availability, policies)
- the request context sent by the chat widget (dates, party size)
- web search results, when a search ran for this turn
- the tool catalog rendered by the ToolRegistry
- a summary of the reservation in progress
"""

import json
import logging
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path

from agent.fsm.models import ReservationInProgress, ReservationStep
from agent.services.collaborators import RoomInventory, SearchResponse
from agent.state.schemas import ChatContext
from agent.utils.date_parser import DateParseError, format_date_spanish, parse_iso_date

logger = logging.getLogger(__name__)

AVAILABILITY_WINDOW_DAYS = 30
WEB_CONTENT_MAX_CHARS = 300
WEB_RESULTS_IN_PROMPT = 3

STEP_LABELS: dict[ReservationStep, str] = {
    ReservationStep.DATES: "Fechas de la estadía",
    ReservationStep.GUESTS: "Número de huéspedes",
    ReservationStep.ROOM_TYPE: "Tipo de habitación",
    ReservationStep.PERSONAL_DATA: "Datos personales",
    ReservationStep.CONFIRMATION: "Confirmación",
}


@lru_cache
def load_hotel_system_prompt() -> str:
    """
    Load the static instructions from disk.

    Returns:
        str: The prompt text, or a short fallback when the file is unreadable.
    """
    prompt_path = Path(__file__).parent / "hotel_system_prompt.md"
    fallback_prompt = (
        "Eres el asistente virtual de reservas del hotel. Responde en español, "
        "sé amable, usa las herramientas y no inventes precios ni disponibilidad."
    )

    try:
        prompt = prompt_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Error reading system prompt file {prompt_path}: {e}, using fallback")
        return fallback_prompt

    if len(prompt) < 100:
        logger.error(f"System prompt too short ({len(prompt)} characters), using fallback")
        return fallback_prompt

    logger.info(f"Loaded hotel system prompt ({len(prompt)} characters)")
    return prompt


async def build_inventory_context(
    inventory: RoomInventory,
    reference_date: date,
    hotel_location: str,
) -> str:
    """
    Describe room types, near-term availability and hotel policies.

    Raises:
        No exceptions raised - returns a fallback block when the inventory fails.
    """
    try:
        room_types = [room for room in await inventory.list_room_types() if room.active]
        available = await inventory.list_available_room_types(
            reference_date, reference_date + timedelta(days=AVAILABILITY_WINDOW_DAYS)
        )
    except Exception as e:
        logger.error(f"Error loading inventory snapshot: {e}", exc_info=True)
        return (
            "=== INFORMACIÓN DEL HOTEL ===\n"
            "La información de habitaciones no está disponible en este momento. "
            "Usa las herramientas para consultarla."
        )

    lines = ["=== INFORMACIÓN DEL HOTEL ===", "", "TIPOS DE HABITACIÓN:"]
    for room in room_types:
        lines.append(
            f"- {room.title} (ID: {room.id}): S/{room.nightly_price:.2f} por noche, "
            f"{room.adult_capacity} adultos y {room.child_capacity} niños, "
            f"{room.bed_count} camas. {room.description}"
        )
    if not room_types:
        lines.append("- (Sin tipos de habitación registrados)")

    lines.extend([
        "",
        f"DISPONIBILIDAD: {len(available)} tipos de habitación con disponibilidad "
        f"en los próximos {AVAILABILITY_WINDOW_DAYS} días.",
        "",
        "INFORMACIÓN GENERAL:",
        f"- Ubicación: {hotel_location}",
        "- Check-in: 14:00",
        "- Check-out: 12:00",
        "- WiFi gratuito en todo el hotel",
        "- Estacionamiento gratuito sujeto a disponibilidad",
        "- Recepción 24 horas",
        "",
        "POLÍTICAS:",
        "- Cancelación gratuita hasta 48 horas antes del check-in; después, cargo del 50%; no-show 100%",
        "- No se permiten mascotas",
        "- Métodos de pago: efectivo, tarjetas de crédito/débito y transferencia bancaria",
        "",
        f"FECHA DE HOY: {reference_date.isoformat()}",
    ])
    return "\n".join(lines)


async def build_request_context(inventory: RoomInventory, context: ChatContext | None) -> str:
    """Availability for the dates the chat widget sent, plus party size."""
    if context is None:
        return ""

    lines = ["=== CONTEXTO DE LA CONVERSACIÓN ==="]

    if context.check_in and context.check_out:
        lines.append(f"Fechas consultadas: {context.check_in} a {context.check_out}")
        try:
            check_in = parse_iso_date(context.check_in)
            check_out = parse_iso_date(context.check_out)
            available = await inventory.list_available_room_types(check_in, check_out)
        except DateParseError as e:
            logger.warning(f"Ignoring invalid dates in request context: {e}")
            available = None
        except Exception as e:
            logger.error(f"Error checking availability for request context: {e}", exc_info=True)
            available = None

        if available:
            lines.append("Disponibilidad para esas fechas:")
            lines.extend(f"✅ {room.title} (ID: {room.id})" for room in available)
        elif available is not None:
            lines.append("❌ No hay habitaciones disponibles para esas fechas")

    if context.adults is not None:
        party = f"Huéspedes: {context.adults} adultos"
        if context.children:
            party += f" y {context.children} niños"
        lines.append(party)

    return "\n".join(lines) if len(lines) > 1 else ""


def format_web_results(response: SearchResponse | None) -> str:
    if response is None or not response.results:
        return ""

    lines = ["=== INFORMACIÓN DE LA WEB (BÚSQUEDA EXTERNA) ==="]
    for index, result in enumerate(response.results[:WEB_RESULTS_IN_PROMPT], start=1):
        content = result.content
        if len(content) > WEB_CONTENT_MAX_CHARS:
            content = content[:WEB_CONTENT_MAX_CHARS] + "..."
        lines.append(f"{index}. {result.title}")
        lines.append(f"   {content}")
        lines.append(f"   Fuente: {result.url}")
    lines.append("==== FIN INFORMACIÓN WEB ====")
    return "\n".join(lines)


def _describe_date(value: str) -> str:
    """'2025-12-12' -> '2025-12-12 (viernes 12 de diciembre)'."""
    try:
        return f"{value} ({format_date_spanish(parse_iso_date(value))})"
    except DateParseError:
        return value


def format_reservation_summary(
    reservation: ReservationInProgress | None,
    user_confirmed: bool = False,
) -> str:
    """
    Human-readable state of the reservation in progress.

    When the guest just confirmed at the confirmation step, the block ends
    with the exact create_reservation arguments to use.
    """
    if reservation is None:
        return ""

    lines = [
        "=== RESERVA EN PROGRESO ===",
        f"Paso actual: {STEP_LABELS[reservation.step]}",
    ]
    if reservation.check_in:
        lines.append(f"Fecha de entrada: {_describe_date(reservation.check_in)}")
    if reservation.check_out:
        lines.append(f"Fecha de salida: {_describe_date(reservation.check_out)}")
    if reservation.adults is not None:
        lines.append(f"Adultos: {reservation.adults}")
    if reservation.children is not None:
        lines.append(f"Niños: {reservation.children}")
    if reservation.room_type_id is not None:
        lines.append(f"Tipo de habitación (ID): {reservation.room_type_id}")
    if reservation.computed_price is not None:
        lines.append(f"Precio total calculado: S/{reservation.computed_price:.2f}")
    if reservation.personal_data is not None:
        guest = reservation.personal_data
        lines.append(f"Huésped: {guest.full_name} | Documento: {guest.document_number} | Correo: {guest.email}")

    if user_confirmed and reservation.step == ReservationStep.CONFIRMATION:
        arguments = {
            "fechaEntrada": reservation.check_in,
            "fechaSalida": reservation.check_out,
            "cantidadAdultos": reservation.adults,
            "cantidadNinhos": reservation.children or 0,
            "tipoHabitacionId": reservation.room_type_id,
            "personalData": reservation.personal_data.model_dump(by_alias=True, exclude_none=True),
        }
        lines.extend([
            "",
            "El huésped CONFIRMÓ la reserva. Crea la reserva ahora con:",
            f"[USE_TOOL: create_reservation] {json.dumps(arguments, ensure_ascii=False)} [END_TOOL]",
        ])

    lines.append("=== FIN RESERVA EN PROGRESO ===")
    return "\n".join(lines)


def assemble_system_prompt(*sections: str) -> str:
    """Join the non-empty prompt sections."""
    return "\n\n".join(section.strip() for section in sections if section and section.strip())
