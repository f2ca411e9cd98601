"""
Response shaping for the chat API.

- requires_human_handoff: keyword triggers on the user message and the reply
- suggested_actions: quick replies, step-aware while a reservation is in progress
- clean_visible_message: strips tool markers and raw error annotations
"""

import re

from agent.fsm.models import ReservationInProgress, ReservationStep

HANDOFF_USER_KEYWORDS = (
    "queja",
    "problema",
    "insatisfecho",
    "gerente",
    "supervisor",
    "hablar con alguien",
    "hablar con persona",
    "hablar con una persona",
    "no entiendo",
    "emergencia",
    "urgente",
    "reclamo",
    "molesto",
)

HANDOFF_REPLY_PHRASES = (
    "no puedo",
    "transferir",
    "agente humano",
)

STEP_ACTIONS: dict[ReservationStep, list[str]] = {
    ReservationStep.DATES: ["Consultar disponibilidad", "Ver habitaciones", "Cancelar reserva"],
    ReservationStep.GUESTS: ["Continuar con reserva", "Cambiar fechas", "Cancelar reserva"],
    ReservationStep.ROOM_TYPE: ["Ver detalles de habitaciones", "Cambiar fechas", "Cancelar reserva"],
    ReservationStep.PERSONAL_DATA: ["Confirmar datos", "Modificar reserva", "Cancelar reserva"],
    ReservationStep.CONFIRMATION: ["Confirmar reserva", "Modificar datos", "Cancelar reserva"],
}

DEFAULT_ACTIONS = ["Ver habitaciones disponibles", "Hablar con un agente"]

FALLBACK_MESSAGE = (
    "Lo siento, no pude completar esa acción en este momento. "
    "¿Podrías intentarlo de nuevo o darme más detalles?"
)

_TOOL_CALL_RE = re.compile(r"\[USE_TOOL:[^\]]*\].*?(?:\[END_TOOL\]|$)", re.DOTALL)
_RESULT_HEADER_RE = re.compile(r"\[RESULTADO DE [^\]]*\]:?")
_RESULT_FOOTER_RE = re.compile(r"\[FIN RESULTADO\]")
_ERROR_RE = re.compile(r"\[ERROR\]:[^\n]*")
_STRAY_MARKER_RE = re.compile(r"\[(?:USE_TOOL:?[^\]]*|END_TOOL)\]")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def requires_human_handoff(user_message: str, reply: str) -> bool:
    user_lowered = user_message.lower()
    reply_lowered = reply.lower()
    return any(keyword in user_lowered for keyword in HANDOFF_USER_KEYWORDS) or any(
        phrase in reply_lowered for phrase in HANDOFF_REPLY_PHRASES
    )


def suggested_actions(
    user_message: str,
    reply: str,
    reservation: ReservationInProgress | None = None,
) -> list[str]:
    """Quick replies for the chat UI."""
    if reservation is not None:
        return list(STEP_ACTIONS[reservation.step])

    combined = f"{user_message} {reply}".lower()
    if "reserva" in combined:
        return ["Ver habitaciones disponibles", "Consultar disponibilidad"]
    if "precio" in combined or "tarifa" in combined:
        return ["Ver todas las tarifas", "Consultar promociones"]
    if "servicios" in combined:
        return ["Ver servicios del hotel", "Ver instalaciones"]
    if "disponib" in combined:
        return ["Consultar fechas específicas", "Hacer una reserva"]
    return list(DEFAULT_ACTIONS)


def clean_visible_message(text: str) -> str:
    """
    Remove protocol markers before text reaches the user.

    Invocation spans and [ERROR] annotations are dropped entirely; result
    blocks keep their content without the surrounding markers.
    """
    cleaned = _TOOL_CALL_RE.sub("", text)
    cleaned = _ERROR_RE.sub("", cleaned)
    cleaned = _RESULT_HEADER_RE.sub("", cleaned)
    cleaned = _RESULT_FOOTER_RE.sub("", cleaned)
    cleaned = _STRAY_MARKER_RE.sub("", cleaned)
    cleaned = _BLANK_LINES_RE.sub("\n\n", cleaned).strip()
    return cleaned or FALLBACK_MESSAGE
