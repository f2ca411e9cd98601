"""
Unit tests for the heuristic entity extractor.

Every matcher returns (value, found) and never raises for "no match".
"""

from datetime import date

import pytest

from agent.fsm.entity_extractor import (
    detect_booking_intent,
    detect_cancel_intent,
    detect_confirmation,
    extract_entities,
    extract_guest_counts,
    extract_personal_data,
    extract_room_type,
)
from agent.fsm.models import ExtractionPatch


class TestIntentKeywords:
    @pytest.mark.parametrize(
        "text",
        ["cancelar reserva", "mejor no, olvídalo", "quiero empezar de nuevo", "RESET"],
    )
    def test_cancel_detected(self, text):
        assert detect_cancel_intent(text) is True

    def test_cancel_is_whole_word(self):
        """'reset' inside 'preset' is not a cancel request."""
        assert detect_cancel_intent("usa el preset de siempre") is False

    @pytest.mark.parametrize("text", ["sí, confirmo", "Ok", "de acuerdo", "si"])
    def test_confirmation_detected(self, text):
        assert detect_confirmation(text) is True

    def test_confirmation_is_whole_word(self):
        """'si' inside 'sigo' or 'sistema' does not confirm."""
        assert detect_confirmation("sigo revisando el sistema") is False

    @pytest.mark.parametrize(
        "text", ["quiero reservar", "una reservación", "busco un cuarto", "¿hay habitaciones?"]
    )
    def test_booking_intent_is_substring(self, text):
        assert detect_booking_intent(text) is True

    def test_no_booking_intent(self):
        assert detect_booking_intent("¿cómo está el clima?") is False


class TestGuestCounts:
    def test_adults_and_children(self):
        assert extract_guest_counts("somos 2 adultos y 1 niño") == (2, 1, True)

    def test_sin_ninos(self):
        adults, children, found = extract_guest_counts("3 adultos sin niños")

        assert found is True
        assert (adults, children) == (3, 0)

    def test_personas(self):
        assert extract_guest_counts("para 4 personas") == (4, 0, True)

    def test_nothing_found(self):
        assert extract_guest_counts("hola") == (None, None, False)


class TestRoomType:
    def test_explicit_type_number(self, room_catalog):
        assert extract_room_type("me quedo con la tipo 3", room_catalog) == (3, True)

    def test_explicit_option(self, room_catalog):
        assert extract_room_type("la opción 5 por favor", room_catalog) == (5, True)

    def test_unknown_id_is_not_selected(self, room_catalog):
        room_type_id, found = extract_room_type("la opción 42", room_catalog)

        assert found is False
        assert room_type_id is None

    def test_number_followed_by_guest_word_is_not_a_room(self, room_catalog):
        """'habitación 2 adultos' talks about guests, not room type 2."""
        assert extract_room_type("una habitación 2 adultos", room_catalog) == (None, False)

    def test_name_match(self, room_catalog):
        assert extract_room_type("prefiero la suite", room_catalog) == (6, True)

    def test_name_match_without_accents(self, room_catalog):
        assert extract_room_type("quiero la matrimonial", room_catalog) == (2, True)

    def test_name_match_needs_catalog(self):
        assert extract_room_type("quiero la matrimonial") == (None, False)


class TestPersonalData:
    def test_full_identity(self):
        data, found = extract_personal_data(
            "Juan Pérez García, DNI 12345678, juan@mail.com, 987654321"
        )

        assert found is True
        assert data.first_name == "Juan"
        assert data.first_surname == "Pérez"
        assert data.second_surname == "García"
        assert data.document_number == "12345678"
        assert data.email == "juan@mail.com"
        assert data.phone == "987654321"
        assert data.gender == "M"

    def test_gender_detected(self):
        data, _ = extract_personal_data(
            "Ana Torres, documento 87654321, ana@mail.com, femenino"
        )

        assert data.gender == "F"

    def test_single_signal_is_not_personal_data(self):
        assert extract_personal_data("mi correo es juan@mail.com") == (None, False)

    def test_missing_name_is_not_personal_data(self):
        assert extract_personal_data("dni 12345678 y correo juan@mail.com") == (None, False)


class TestExtractEntities:
    def test_booking_sentence(self, reference_date, room_catalog):
        patch = extract_entities(
            "quiero reservar del 10 al 15 de diciembre para 2 adultos",
            reference_date,
            room_catalog,
        )

        assert patch.check_in == date(2025, 12, 10)
        assert patch.check_out == date(2025, 12, 15)
        assert patch.single_date is None
        assert patch.adults == 2
        assert patch.room_type_id is None

    def test_single_date_reported_separately(self, reference_date):
        patch = extract_entities("llego el viernes", reference_date)

        assert patch.check_in is None
        assert patch.single_date == date(2025, 11, 7)

    def test_malformed_date_ignored_not_raised(self, reference_date):
        patch = extract_entities("entrada 2025-13-45 para 2 adultos", reference_date)

        assert patch.check_in is None
        assert patch.single_date is None
        assert patch.adults == 2

    def test_message_without_entities(self, reference_date):
        assert extract_entities("gracias", reference_date) == ExtractionPatch()
