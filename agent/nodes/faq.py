"""
FAQ shortcut: static answers for short, common questions.

Messages that are short, mention no date and carry no booking, confirmation
or cancel wording are matched against a keyword table. A hit is answered
directly, without entity extraction or a call to the generative backend.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date

from agent.fsm.entity_extractor import (
    detect_booking_intent,
    detect_cancel_intent,
    detect_confirmation,
)
from agent.utils.date_parser import DateParseError, extract_date_range, find_natural_date

logger = logging.getLogger(__name__)

FAQ_MAX_LENGTH = 100

_YEAR_RE = re.compile(r"\b20\d{2}\b")


@dataclass(frozen=True)
class FAQEntry:
    id: str
    keywords: tuple[str, ...]
    answer: str

    def render(self, location: str) -> str:
        """Answer text with the hotel location filled in."""
        return self.answer.format(location=location)


# Order matters: specific topics first, greetings and thanks last
FAQ_ENTRIES: tuple[FAQEntry, ...] = (
    FAQEntry(
        id="check_in",
        keywords=("check-in", "checkin", "check in", "hora de entrada", "hora de llegada"),
        answer=(
            "🕑 El check-in es a partir de las 14:00. Si llegas antes, podemos guardar "
            "tu equipaje sin costo mientras preparamos tu habitación."
        ),
    ),
    FAQEntry(
        id="check_out",
        keywords=("check-out", "checkout", "check out", "hora de salida"),
        answer=(
            "🕛 El check-out es hasta las 12:00. Si necesitas salir más tarde, consulta en "
            "recepción por un late check-out sujeto a disponibilidad."
        ),
    ),
    FAQEntry(
        id="wifi",
        keywords=("wifi", "wi-fi", "internet"),
        answer="📶 Contamos con WiFi gratuito de alta velocidad en todas las habitaciones y áreas comunes.",
    ),
    FAQEntry(
        id="parking",
        keywords=("estacionamiento", "parqueo", "parking", "cochera"),
        answer="🚗 Tenemos estacionamiento gratuito para huéspedes, sujeto a disponibilidad.",
    ),
    FAQEntry(
        id="breakfast",
        keywords=("desayuno",),
        answer="🍳 El desayuno buffet se sirve todos los días de 7:00 a 10:00 en el restaurante del hotel.",
    ),
    FAQEntry(
        id="pets",
        keywords=("mascota", "mascotas", "perro", "gato"),
        answer="🐾 Lo sentimos, no se permiten mascotas en el hotel.",
    ),
    FAQEntry(
        id="location",
        keywords=("ubicación", "ubicacion", "dirección", "direccion", "dónde están", "donde estan", "dónde queda", "donde queda"),
        answer=(
            "📍 Estamos en {location}, cerca de las principales atracciones "
            "turísticas. Si quieres, te indico cómo llegar."
        ),
    ),
    FAQEntry(
        id="cancellation_policy",
        keywords=("política de cancelación", "politica de cancelacion", "reembolso", "penalidad"),
        answer=(
            "📋 Política de cancelación:\n"
            "• Cancelación gratuita hasta 48 horas antes del check-in\n"
            "• Cancelaciones con menos de 48 horas: cargo del 50% del total\n"
            "• No presentarse (no-show): cargo del 100%"
        ),
    ),
    FAQEntry(
        id="payment_methods",
        keywords=("métodos de pago", "metodos de pago", "formas de pago", "tarjeta", "efectivo", "yape", "pagar"),
        answer="💳 Aceptamos efectivo, tarjetas de crédito y débito (Visa, Mastercard) y transferencias bancarias.",
    ),
    FAQEntry(
        id="reception",
        keywords=("recepción", "recepcion", "24 horas", "horario de atención", "horario de atencion"),
        answer="🛎️ Nuestra recepción atiende las 24 horas, todos los días del año.",
    ),
    FAQEntry(
        id="services",
        keywords=("servicios", "instalaciones", "piscina", "gimnasio", "spa"),
        answer=(
            "🏨 Nuestros servicios incluyen: WiFi gratuito, desayuno buffet, estacionamiento, "
            "recepción 24 horas, servicio a la habitación y lavandería."
        ),
    ),
    FAQEntry(
        id="prices",
        keywords=("precio", "precios", "tarifa", "tarifas", "cuánto cuesta", "cuanto cuesta"),
        answer=(
            "💰 Nuestras tarifas dependen del tipo de habitación y las fechas. "
            "Dime qué fechas te interesan y te muestro las opciones disponibles."
        ),
    ),
    FAQEntry(
        id="greeting",
        keywords=("hola", "buenos días", "buenos dias", "buenas tardes", "buenas noches", "buenas"),
        answer=(
            "¡Hola! 👋 Bienvenido. Soy el asistente virtual del hotel. Puedo ayudarte a "
            "consultar disponibilidad, conocer nuestras habitaciones o hacer una reserva. "
            "¿En qué puedo ayudarte?"
        ),
    ),
    FAQEntry(
        id="thanks",
        keywords=("gracias", "muchas gracias", "vale", "perfecto", "genial"),
        answer="¡Con gusto! 😊 Si necesitas algo más, aquí estoy para ayudarte.",
    ),
)


def _matches(lowered: str, keyword: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", lowered) is not None


def _mentions_date(message: str, reference_date: date | None) -> bool:
    if _YEAR_RE.search(message):
        return True
    try:
        _, _, found_range = extract_date_range(message, reference_date)
        if found_range:
            return True
        _, found_date = find_natural_date(message, reference_date)
        return found_date
    except DateParseError:
        return True


def is_faq_eligible(message: str, reference_date: date | None = None) -> bool:
    """Short, date-free messages without booking, confirmation or cancel wording."""
    stripped = message.strip()
    if not stripped or len(stripped) > FAQ_MAX_LENGTH:
        return False
    if detect_booking_intent(stripped) or detect_confirmation(stripped) or detect_cancel_intent(stripped):
        return False
    return not _mentions_date(stripped, reference_date)


def match_faq(message: str, reference_date: date | None = None) -> FAQEntry | None:
    """Return the FAQ entry answering message, or None when the shortcut does not apply."""
    if not is_faq_eligible(message, reference_date):
        return None

    lowered = message.lower()
    for entry in FAQ_ENTRIES:
        if any(_matches(lowered, keyword) for keyword in entry.keywords):
            logger.debug(f"FAQ matched | faq_id={entry.id}")
            return entry
    return None
