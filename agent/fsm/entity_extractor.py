"""
Entity Extractor - heuristic matchers for reservation data in chat messages.

Each matcher is a pure function returning its value plus a found flag. None of
them raise when nothing matches; extract_entities() runs the whole pipeline and
returns an ExtractionPatch for ReservationFSM.update().

Keyword sets:
- Cancel and confirmation keywords are matched as whole words, so "si" does
  not fire inside "sigo" and "reset" does not fire inside "preset".
- Booking intent is a substring match, so "reservación" or "reservarla" count.
"""

import logging
import re
import unicodedata
from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING

from rapidfuzz import fuzz

from agent.fsm.models import ExtractionPatch, PersonalData
from agent.utils.date_parser import DateParseError, extract_date_range, find_natural_date

if TYPE_CHECKING:
    from agent.services.collaborators import RoomType

logger = logging.getLogger(__name__)

# ============================================================================
# KEYWORD SETS
# ============================================================================

CANCEL_KEYWORDS = (
    "cancelar",
    "cancela",
    "cancelar reserva",
    "empezar de nuevo",
    "empezar otra vez",
    "borrar",
    "eliminar",
    "deshacer",
    "no quiero",
    "ya no quiero",
    "mejor no",
    "olvídalo",
    "olvidalo",
    "reiniciar",
    "restart",
    "reset",
)

CONFIRMATION_KEYWORDS = (
    "sí",
    "si",
    "confirmo",
    "confirmar",
    "ok",
    "okay",
    "adelante",
    "procede",
    "proceder",
    "correcto",
    "de acuerdo",
    "acepto",
    "está bien",
    "esta bien",
)

BOOKING_INTENT_KEYWORDS = (
    "reservar",
    "reserva",
    "reservación",
    "reservacion",
    "habitación",
    "habitacion",
    "cuarto",
    "hospedarme",
    "alojarme",
    "book",
)

# Capitalized words that are never part of a guest name
NAME_STOPWORDS = {
    "hola", "buenas", "buenos", "mi", "me", "soy", "llamo", "nombre", "es",
    "dni", "documento", "correo", "email", "teléfono", "telefono", "celular",
    "gracias", "por", "favor", "quiero", "confirmo", "sí", "si", "ok",
    "masculino", "femenino", "género", "genero", "ciudad", "país", "pais",
    "perú", "peru", "lima", "y", "el", "la", "de", "del", "mis", "datos",
    "son", "aquí", "aqui", "están", "estan", "con", "para", "reserva",
}

# Words too generic to identify a room type by name
ROOM_TITLE_STOPWORDS = {
    "habitación", "habitacion", "cuarto", "tipo", "para", "con", "vista",
    "personas", "persona", "camas", "cama",
}

ROOM_NAME_SIMILARITY = 85

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE_RE = re.compile(r"(?<![\d@.])\b\d{9,10}\b")
_DOCUMENT_KEYWORD_RE = re.compile(r"\b(?:dni|documento|doc\.?)\b\D{0,20}?(\d{8,12})\b", re.IGNORECASE)
_DOCUMENT_RE = re.compile(r"(?<![\d@.])\b\d{8}\b")
_NAME_TOKEN_RE = re.compile(r"\b[A-ZÁÉÍÓÚÑ][a-záéíóúñü]+\b")


def _contains_word(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", lowered) for keyword in keywords)


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


# ============================================================================
# INTENT MATCHERS
# ============================================================================


def detect_cancel_intent(text: str) -> bool:
    return _contains_word(text, CANCEL_KEYWORDS)


def detect_confirmation(text: str) -> bool:
    return _contains_word(text, CONFIRMATION_KEYWORDS)


def detect_booking_intent(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in BOOKING_INTENT_KEYWORDS)


# ============================================================================
# ENTITY MATCHERS
# ============================================================================


def extract_guest_counts(text: str) -> tuple[int | None, int | None, bool]:
    """
    Extract adult and child counts.

    "2 adultos y 1 niño" → (2, 1); "sin niños" → children 0;
    "4 personas" → (4, 0) only when no adult/child wording was found.
    """
    lowered = text.lower()
    adults: int | None = None
    children: int | None = None

    adult_match = re.search(r"(\d+)\s*adult[oa]s?\b", lowered)
    if adult_match:
        adults = int(adult_match.group(1))

    child_match = re.search(r"(\d+)\s*ni[ñn][oa]s?\b", lowered)
    if child_match:
        children = int(child_match.group(1))
    elif re.search(r"\bsin\s+ni[ñn][oa]s\b", lowered):
        children = 0

    if adults is None and children is None:
        people_match = re.search(r"(\d+)\s*personas?\b", lowered)
        if people_match:
            adults = int(people_match.group(1))
            children = 0

    return adults, children, adults is not None or children is not None


def extract_room_type(
    text: str,
    catalog: "Sequence[RoomType] | None" = None,
) -> tuple[int | None, bool]:
    """
    Extract the selected room type id.

    Explicit references ("tipo 3", "opción 2", "id 5") win; with a catalog the
    id must exist in it. Otherwise room-type titles from the catalog are
    matched word by word against the message ("la suite" → Suite Presidencial).
    """
    lowered = text.lower()
    known_ids = {room.id for room in catalog} if catalog else None

    explicit = re.search(
        r"\b(?:tipo|habitaci[óo]n|opci[óo]n|n[úu]mero|id)\s*(?:#|n[°º]\.?\s*)?(\d{1,4})\b(?!\s*(?:adult|ni[ñn]|persona|noche))",
        lowered,
    )
    if explicit:
        room_type_id = int(explicit.group(1))
        if known_ids is None or room_type_id in known_ids:
            return room_type_id, True

    if not catalog:
        return None, False

    message_words = [
        _strip_accents(word) for word in re.findall(r"[a-záéíóúñü]+", lowered) if len(word) >= 4
    ]
    if not message_words:
        return None, False

    best: tuple[int, float, int] | None = None
    for room in catalog:
        title_words = [
            _strip_accents(word)
            for word in re.findall(r"[a-záéíóúñü]+", room.title.lower())
            if len(word) >= 4 and word not in ROOM_TITLE_STOPWORDS
        ]
        matched = sum(
            1
            for title_word in title_words
            if any(fuzz.ratio(title_word, word) >= ROOM_NAME_SIMILARITY for word in message_words)
        )
        if not matched:
            continue
        score = fuzz.token_set_ratio(_strip_accents(room.title.lower()), _strip_accents(lowered))
        candidate = (matched, score, room.id)
        if best is None or candidate[:2] > best[:2]:
            best = candidate

    if best is None:
        return None, False

    logger.debug(f"Room type resolved by name | room_type_id={best[2]} | matched_words={best[0]}")
    return best[2], True


def extract_personal_data(text: str) -> tuple[PersonalData | None, bool]:
    """
    Extract guest identity from a message such as
    "Juan Pérez García, DNI 12345678, juan@mail.com, 987654321".

    At least two of email / phone / document must be present for the message
    to count as personal data, and the result is only returned when name,
    first surname, document and email were all found.
    """
    email_match = _EMAIL_RE.search(text)
    email = email_match.group(0) if email_match else None

    without_email = _EMAIL_RE.sub(" ", text)

    document: str | None = None
    keyword_match = _DOCUMENT_KEYWORD_RE.search(without_email)
    if keyword_match:
        document = keyword_match.group(1)
    else:
        plain_match = _DOCUMENT_RE.search(without_email)
        if plain_match:
            document = plain_match.group(0)

    phones = [
        match.group(0) for match in _PHONE_RE.finditer(without_email) if match.group(0) != document
    ]

    signals = sum(1 for value in (email, phones[0] if phones else None, document) if value)
    if signals < 2:
        return None, False

    names = [
        token
        for token in _NAME_TOKEN_RE.findall(without_email)
        if token.lower() not in NAME_STOPWORDS
    ]

    if not (email and document and len(names) >= 2):
        return None, False

    lowered = text.lower()
    gender = "M"
    if re.search(r"\b(?:femenino|mujer)\b", lowered):
        gender = "F"
    else:
        explicit_gender = re.search(r"\b(?:g[ée]nero|sexo)\s*:?\s*([mf])\b", lowered)
        if explicit_gender:
            gender = explicit_gender.group(1).upper()

    city_match = re.search(r"\bciudad\s*:?\s*([A-ZÁÉÍÓÚÑ][\wáéíóúñ]+)", text)
    country_match = re.search(r"\bpa[íi]s\s*:?\s*([A-ZÁÉÍÓÚÑ][\wáéíóúñ]+)", text)

    personal_data = PersonalData(
        first_name=names[0],
        first_surname=names[1],
        second_surname=names[2] if len(names) > 2 else None,
        document_number=document,
        gender=gender,
        email=email,
        phone=phones[0] if phones else None,
        phone_secondary=phones[1] if len(phones) > 1 else None,
        city=city_match.group(1) if city_match else None,
        country=country_match.group(1) if country_match else None,
    )
    return personal_data, True


def extract_entities(
    text: str,
    reference_date: date | None = None,
    catalog: "Sequence[RoomType] | None" = None,
) -> ExtractionPatch:
    """
    Run every matcher over one message.

    A malformed explicit date literal is logged and ignored; the remaining
    entities are still extracted.
    """
    check_in = check_out = single_date = None

    try:
        check_in, check_out, found = extract_date_range(text, reference_date)
        if not found:
            single_date, _ = find_natural_date(text, reference_date)
    except DateParseError as e:
        logger.warning(f"Ignoring malformed date in message: {e}")
        check_in = check_out = single_date = None

    adults, children, _ = extract_guest_counts(text)
    room_type_id, _ = extract_room_type(text, catalog)
    personal_data, _ = extract_personal_data(text)

    return ExtractionPatch(
        check_in=check_in,
        check_out=check_out,
        single_date=single_date,
        adults=adults,
        children=children,
        room_type_id=room_type_id,
        personal_data=personal_data,
    )
