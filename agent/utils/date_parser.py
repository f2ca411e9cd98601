"""
Natural Date Parser for Spanish Language.

Finds stay dates inside free-text chat messages ("del 10 al 15 de diciembre",
"3 noches desde el viernes", "mañana") and parses the strict ISO dates used
by the booking tools.

Every finder returns a value plus a found flag: not finding a date is an
expected outcome. Only an explicit numeric literal naming an impossible date
("2025-13-45", "31/02/2026") raises DateParseError.
"""

import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

# Default timezone for all date operations
LIMA_TZ = ZoneInfo("America/Lima")


class DateParseError(ValueError):
    """An explicit date literal could not be turned into a calendar date."""


def today_in(timezone: ZoneInfo = LIMA_TZ) -> date:
    return datetime.now(timezone).date()


def parse_iso_date(value: str) -> date:
    """
    Parse a strict YYYY-MM-DD string.

    Raises:
        DateParseError: If the value is not a valid ISO calendar date
    """
    value = (value or "").strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise DateParseError(f"fecha inválida '{value}', se esperaba YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise DateParseError(f"fecha inválida '{value}': {e}") from e


def _literal(year: int, month: int, day: int, raw: str) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise DateParseError(f"fecha inválida '{raw}': {e}") from e


def _calendar(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _add_months(base: date, months: int) -> tuple[int, int]:
    index = base.month - 1 + months
    return base.year + index // 12, index % 12 + 1


# ============================================================================
# Single dates
# ============================================================================


def find_natural_date(
    text: str,
    reference_date: date | None = None,
) -> tuple[date | None, bool]:
    """
    Find the first date mentioned in text.

    Recognized forms, in priority order:
    - Numeric: "2025-12-10", "10/12/2025", "10-12-2025"
    - Written: "10 de diciembre", "10 de diciembre de 2026"
    - Relative: "hoy", "pasado mañana", "mañana"
    - "próxima semana" (first Monday on/after one week from now)
    - "próximo mes" (1st of next month)
    - "fin de semana" (next Saturday, today included)
    - "en 3 días", "dentro de 2 semanas"
    - Weekdays: "viernes" (next occurrence, never today)

    Args:
        text: Free-text message
        reference_date: Date that relative expressions count from (default: today)

    Returns:
        (date, True) when a date was found, (None, False) otherwise

    Raises:
        DateParseError: If a numeric literal names an impossible date
    """
    base = reference_date or today_in()
    lowered = text.lower()

    iso = re.search(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b", lowered)
    if iso:
        year, month, day = map(int, iso.groups())
        return _literal(year, month, day, iso.group(0)), True

    dmy = re.search(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b", lowered)
    if dmy:
        day, month, year = map(int, dmy.groups())
        return _literal(year, month, day, dmy.group(0)), True

    written = re.search(
        r"\b(\d{1,2})\s+de\s+([a-záéíóú]+)(?:\s+(?:de|del)\s+(\d{4}))?", lowered
    )
    if written and written.group(2) in SPANISH_MONTHS:
        day = int(written.group(1))
        month = SPANISH_MONTHS[written.group(2)]
        if written.group(3):
            year = int(written.group(3))
        else:
            year = base.year
            if (month, day) < (base.month, base.day):
                year += 1
        result = _calendar(year, month, day)
        if result:
            return result, True

    if re.search(r"\bhoy\b", lowered):
        return base, True

    # "pasado mañana" contains "mañana", so it must be checked first
    if re.search(r"\bpasado\s+ma[ñn]ana\b", lowered):
        return base + timedelta(days=2), True

    if re.search(r"\bma[ñn]ana\b", lowered):
        return base + timedelta(days=1), True

    if re.search(r"\b(?:pr[óo]xima|siguiente)\s+semana\b|\bsemana\s+que\s+viene\b", lowered):
        week_later = base + timedelta(days=7)
        return week_later + timedelta(days=(7 - week_later.weekday()) % 7), True

    if re.search(r"\b(?:pr[óo]ximo|siguiente)\s+mes\b|\bmes\s+que\s+viene\b", lowered):
        year, month = _add_months(base, 1)
        return date(year, month, 1), True

    if re.search(r"\bfin\s+de\s+semana\b", lowered):
        return base + timedelta(days=(5 - base.weekday()) % 7), True

    days = re.search(r"\b(?:en|dentro\s+de)\s+(\d{1,3})\s+d[íi]as?\b", lowered)
    if days:
        return base + timedelta(days=int(days.group(1))), True

    weeks = re.search(r"\b(?:en|dentro\s+de)\s+(\d{1,2})\s+semanas?\b", lowered)
    if weeks:
        return base + timedelta(weeks=int(weeks.group(1))), True

    for name, weekday in SPANISH_WEEKDAYS.items():
        if re.search(rf"\b{name}\b", lowered):
            days_ahead = (weekday - base.weekday()) % 7 or 7
            return base + timedelta(days=days_ahead), True

    return None, False


# ============================================================================
# Date ranges
# ============================================================================


def _explicit_pair(
    pattern: str, lowered: str, order: str
) -> tuple[date, date] | None:
    matches = list(re.finditer(pattern, lowered))
    if len(matches) < 2:
        return None
    parsed = []
    for match in matches[:2]:
        values = dict(zip(order, map(int, match.groups())))
        parsed.append(_literal(values["y"], values["m"], values["d"], match.group(0)))
    return parsed[0], parsed[1]


def _del_al_de_mes(lowered: str, base: date) -> tuple[date, date] | None:
    match = re.search(
        r"\bdel\s+(\d{1,2})\s+al\s+(\d{1,2})\s+de\s+([a-záéíóú]+)"
        r"(?:\s+(?:de|del)\s+(\d{4}))?",
        lowered,
    )
    if not match or match.group(3) not in SPANISH_MONTHS:
        return None

    month = SPANISH_MONTHS[match.group(3)]
    if match.group(4):
        year = int(match.group(4))
    else:
        year = base.year + 1 if month < base.month else base.year

    start_day, end_day = int(match.group(1)), int(match.group(2))
    end = _calendar(year, month, end_day)
    if end_day < start_day:
        # the month names the check-out; check-in falls in the month before
        start_year, start_month = (year - 1, 12) if month == 1 else (year, month - 1)
        start = _calendar(start_year, start_month, start_day)
    else:
        start = _calendar(year, month, start_day)
    if start is None or end is None:
        return None
    return start, end


def _desde_hasta(lowered: str, base: date) -> tuple[date, date] | None:
    match = re.search(
        r"\bdesde\s+(?:el\s+)?(\d{1,2})/(\d{1,2})\s+hasta\s+(?:el\s+)?(\d{1,2})/(\d{1,2})\b",
        lowered,
    )
    if not match:
        return None

    start_day, start_month, end_day, end_month = map(int, match.groups())
    start_year = base.year + 1 if start_month < base.month else base.year
    end_year = start_year + 1 if end_month < start_month else start_year

    start = _calendar(start_year, start_month, start_day)
    end = _calendar(end_year, end_month, end_day)
    if start is None or end is None:
        return None
    return start, end


def _noches_desde(lowered: str, base: date) -> tuple[date, date] | None:
    match = re.search(r"\b(\d{1,2})\s+noches?\s+(?:desde|a\s+partir\s+de)\s+(.+)", lowered)
    if not match:
        return None

    nights = int(match.group(1))
    start, found = find_natural_date(match.group(2), base)
    if not found or nights < 1:
        return None
    return start, start + timedelta(days=nights)


def _del_al(lowered: str, base: date) -> tuple[date, date] | None:
    match = re.search(r"\bdel\s+(\d{1,2})\s+al\s+(\d{1,2})\b", lowered)
    if not match:
        return None
    month_word = re.match(r"\s+de\s+([a-záéíóú]+)", lowered[match.end():])
    if month_word and month_word.group(1) in SPANISH_MONTHS:
        return None

    start_day, end_day = int(match.group(1)), int(match.group(2))
    year, month = base.year, base.month
    if start_day < base.day:
        year, month = _add_months(base, 1)

    start = _calendar(year, month, start_day)
    if start is None:
        return None

    if end_day > start_day:
        end = _calendar(year, month, end_day)
    else:
        end_year, end_month = _add_months(start, 1)
        end = _calendar(end_year, end_month, end_day)
    if end is None:
        return None
    return start, end


def extract_date_range(
    text: str,
    reference_date: date | None = None,
) -> tuple[date | None, date | None, bool]:
    """
    Find a check-in/check-out pair in text.

    Patterns are tried in order and the first one that yields a valid range
    wins. A pair whose check-out is not after its check-in is ignored.

    Returns:
        (check_in, check_out, True) on success, (None, None, False) otherwise

    Raises:
        DateParseError: If an explicit numeric literal names an impossible date
    """
    base = reference_date or today_in()
    lowered = text.lower()

    candidates = (
        lambda: _explicit_pair(r"\b(\d{4})-(\d{2})-(\d{2})\b", lowered, "ymd"),
        lambda: _explicit_pair(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b", lowered, "dmy"),
        lambda: _del_al_de_mes(lowered, base),
        lambda: _desde_hasta(lowered, base),
        lambda: _noches_desde(lowered, base),
        lambda: _del_al(lowered, base),
    )

    for candidate in candidates:
        pair = candidate()
        if pair and pair[0] < pair[1]:
            return pair[0], pair[1], True

    return None, None, False


def calculate_nights(check_in: date, check_out: date) -> int:
    """Billable nights for a stay; a same-day or inverted range counts as one."""
    return max(1, (check_out - check_in).days)


# ============================================================================
# Formatting
# ============================================================================


def get_weekday_name(value: date) -> str:
    """
    Get the Spanish weekday name for a given date.

    Example:
        >>> get_weekday_name(date(2025, 12, 12))
        'viernes'
    """
    weekday_names = [
        "lunes",
        "martes",
        "miércoles",
        "jueves",
        "viernes",
        "sábado",
        "domingo"
    ]
    return weekday_names[value.weekday()]


def format_date_spanish(value: date) -> str:
    """
    Format a date to Spanish readable format.

    Example:
        >>> format_date_spanish(date(2025, 12, 12))
        'viernes 12 de diciembre'
    """
    month_names = [
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre"
    ]
    return f"{get_weekday_name(value)} {value.day} de {month_names[value.month - 1]}"


# Spanish weekday mappings (full names only; "mar" and "dom" collide with ordinary words)
SPANISH_WEEKDAYS = {
    "lunes": 0,
    "martes": 1,
    "miércoles": 2,
    "miercoles": 2,
    "jueves": 3,
    "viernes": 4,
    "sábado": 5,
    "sabado": 5,
    "domingo": 6,
}

# Spanish month mappings for parsing written dates
SPANISH_MONTHS = {
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "setiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}
