"""
Unit tests for date_parser.py - Spanish date finding inside chat messages.

Tests coverage:
- Relative dates (hoy, mañana, pasado mañana, próxima semana, próximo mes)
- Weekday names (next occurrence, never today)
- Written Spanish dates with year rollover
- Explicit numeric literals and DateParseError
- Date ranges (del X al Y de mes, desde/hasta, N noches desde, ISO pairs)
- Night count and Spanish formatting helpers
"""

from datetime import date

import pytest

from agent.utils.date_parser import (
    DateParseError,
    calculate_nights,
    extract_date_range,
    find_natural_date,
    format_date_spanish,
    get_weekday_name,
    parse_iso_date,
)


# ============================================================================
# Test Relative Dates
# ============================================================================


class TestRelativeDates:
    """Relative expressions counted from the reference date (Saturday Nov 1, 2025)."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("hoy", date(2025, 11, 1)),
            ("llego mañana", date(2025, 11, 2)),
            ("llego manana", date(2025, 11, 2)),
            ("pasado mañana", date(2025, 11, 3)),
            ("en 3 días", date(2025, 11, 4)),
            ("dentro de 2 semanas", date(2025, 11, 15)),
            ("el próximo mes", date(2025, 12, 1)),
        ],
    )
    def test_relative_expressions(self, text, expected, reference_date):
        result, found = find_natural_date(text, reference_date)

        assert found is True
        assert result == expected

    def test_pasado_manana_is_not_read_as_manana(self, reference_date):
        """'pasado mañana' contains 'mañana' but means two days ahead."""
        result, _ = find_natural_date("pasado mañana en la tarde", reference_date)

        assert result == date(2025, 11, 3)

    def test_proxima_semana_is_first_monday_a_week_out(self, reference_date):
        result, found = find_natural_date("la próxima semana", reference_date)

        assert found is True
        assert result == date(2025, 11, 10)
        assert result.weekday() == 0

    def test_fin_de_semana_includes_today_when_saturday(self, reference_date):
        result, _ = find_natural_date("este fin de semana", reference_date)

        assert result == date(2025, 11, 1)


# ============================================================================
# Test Weekdays
# ============================================================================


class TestWeekdays:
    """Weekday names resolve to the next occurrence after the reference date."""

    def test_viernes(self, reference_date):
        result, found = find_natural_date("el viernes", reference_date)

        assert found is True
        assert result == date(2025, 11, 7)

    def test_same_weekday_is_next_week(self, reference_date):
        """Saying 'sábado' on a Saturday means the following Saturday."""
        result, _ = find_natural_date("el sábado", reference_date)

        assert result == date(2025, 11, 8)

    def test_unaccented_weekday(self, reference_date):
        result, _ = find_natural_date("el miercoles", reference_date)

        assert result == date(2025, 11, 5)

    def test_abbreviations_are_not_weekdays(self, reference_date):
        """'mar' must not be read as martes."""
        result, found = find_natural_date("una habitación con vista al mar", reference_date)

        assert found is False
        assert result is None


# ============================================================================
# Test Written and Numeric Dates
# ============================================================================


class TestExplicitDates:
    def test_written_date_this_year(self, reference_date):
        result, found = find_natural_date("el 10 de diciembre", reference_date)

        assert found is True
        assert result == date(2025, 12, 10)

    def test_written_date_already_passed_rolls_to_next_year(self, reference_date):
        result, _ = find_natural_date("el 15 de enero", reference_date)

        assert result == date(2026, 1, 15)

    def test_written_date_with_year(self, reference_date):
        result, _ = find_natural_date("15 de enero de 2027", reference_date)

        assert result == date(2027, 1, 15)

    def test_setiembre_spelling(self, reference_date):
        result, _ = find_natural_date("3 de setiembre", reference_date)

        assert result == date(2026, 9, 3)

    def test_iso_literal(self, reference_date):
        result, found = find_natural_date("entrada 2025-12-10 por favor", reference_date)

        assert found is True
        assert result == date(2025, 12, 10)

    def test_day_month_year_literal(self, reference_date):
        result, _ = find_natural_date("llego el 31/12/2025", reference_date)

        assert result == date(2025, 12, 31)

    @pytest.mark.parametrize("text", ["2025-13-45", "el 31/02/2026"])
    def test_impossible_literal_raises(self, text, reference_date):
        with pytest.raises(DateParseError):
            find_natural_date(text, reference_date)

    def test_no_date_is_not_an_error(self, reference_date):
        result, found = find_natural_date("¿tienen wifi en las habitaciones?", reference_date)

        assert found is False
        assert result is None


# ============================================================================
# Test Date Ranges
# ============================================================================


class TestExtractDateRange:
    def test_del_al_de_mes(self, reference_date):
        check_in, check_out, found = extract_date_range(
            "quiero reservar del 10 al 15 de diciembre", reference_date
        )

        assert found is True
        assert check_in == date(2025, 12, 10)
        assert check_out == date(2025, 12, 15)

    def test_iso_pair(self, reference_date):
        check_in, check_out, found = extract_date_range(
            "del 2025-12-10 al 2025-12-15", reference_date
        )

        assert found is True
        assert (check_in, check_out) == (date(2025, 12, 10), date(2025, 12, 15))

    def test_desde_hasta_across_new_year(self, reference_date):
        check_in, check_out, found = extract_date_range(
            "desde 28/12 hasta 02/01", reference_date
        )

        assert found is True
        assert check_in == date(2025, 12, 28)
        assert check_out == date(2026, 1, 2)

    def test_nights_from_start_date(self, reference_date):
        check_in, check_out, found = extract_date_range(
            "3 noches desde el 10 de diciembre", reference_date
        )

        assert found is True
        assert check_in == date(2025, 12, 10)
        assert check_out == date(2025, 12, 13)

    def test_del_al_without_month_uses_current_month(self, reference_date):
        check_in, check_out, found = extract_date_range("del 5 al 8", reference_date)

        assert found is True
        assert (check_in, check_out) == (date(2025, 11, 5), date(2025, 11, 8))

    def test_del_al_de_mes_check_in_in_previous_month(self, reference_date):
        check_in, check_out, found = extract_date_range("del 28 al 3 de diciembre", reference_date)

        assert found is True
        assert (check_in, check_out) == (date(2025, 11, 28), date(2025, 12, 3))

    def test_del_al_de_enero_spans_new_year(self):
        check_in, check_out, found = extract_date_range("del 30 al 2 de enero", date(2026, 10, 17))

        assert found is True
        assert (check_in, check_out) == (date(2026, 12, 30), date(2027, 1, 2))

    def test_invalid_del_al_de_mes_does_not_fall_back_to_current_month(self, reference_date):
        # 31 de febrero does not exist
        check_in, check_out, found = extract_date_range("del 31 al 2 de marzo", reference_date)

        assert found is False
        assert check_in is None
        assert check_out is None

    def test_inverted_pair_is_ignored(self, reference_date):
        check_in, check_out, found = extract_date_range(
            "2025-12-15 y 2025-12-10", reference_date
        )

        assert found is False
        assert check_in is None
        assert check_out is None

    def test_single_date_is_not_a_range(self, reference_date):
        _, _, found = extract_date_range("llego el 10 de diciembre", reference_date)

        assert found is False

    def test_impossible_literal_in_pair_raises(self, reference_date):
        with pytest.raises(DateParseError):
            extract_date_range("del 2025-12-10 al 2025-13-45", reference_date)


# ============================================================================
# Test Helpers
# ============================================================================


class TestHelpers:
    def test_parse_iso_date(self):
        assert parse_iso_date("2025-12-10") == date(2025, 12, 10)

    @pytest.mark.parametrize("value", ["10-12-2025", "2025/12/10", "", "2025-02-30"])
    def test_parse_iso_date_rejects(self, value):
        with pytest.raises(DateParseError):
            parse_iso_date(value)

    def test_calculate_nights(self):
        assert calculate_nights(date(2025, 12, 10), date(2025, 12, 15)) == 5

    def test_calculate_nights_minimum_one(self):
        assert calculate_nights(date(2025, 12, 10), date(2025, 12, 10)) == 1

    def test_weekday_name(self):
        assert get_weekday_name(date(2025, 12, 12)) == "viernes"

    def test_format_date_spanish(self):
        assert format_date_spanish(date(2025, 12, 12)) == "viernes 12 de diciembre"
