"""
Unit tests for FAQ shortcut eligibility and matching.
"""

import pytest

from agent.nodes.faq import FAQ_ENTRIES, is_faq_eligible, match_faq


class TestEligibility:
    def test_short_question_is_eligible(self, reference_date):
        assert is_faq_eligible("¿Tienen wifi?", reference_date) is True

    def test_long_message_not_eligible(self, reference_date):
        message = "¿Tienen wifi? " + "me gustaría saber más detalles " * 5

        assert len(message) > 100
        assert is_faq_eligible(message, reference_date) is False

    @pytest.mark.parametrize(
        "message",
        [
            "¿a qué hora es el check-in en 2026?",
            "¿hay desayuno mañana?",
            "¿tienen estacionamiento el viernes?",
        ],
    )
    def test_dated_message_not_eligible(self, message, reference_date):
        assert is_faq_eligible(message, reference_date) is False

    @pytest.mark.parametrize(
        "message",
        ["quiero reservar, ¿hay wifi?", "ok, ¿y el wifi?", "cancelar, ¿aceptan mascotas?"],
    )
    def test_booking_confirm_or_cancel_not_eligible(self, message, reference_date):
        assert is_faq_eligible(message, reference_date) is False

    def test_malformed_date_not_eligible(self, reference_date):
        assert is_faq_eligible("wifi el 31/02/2026", reference_date) is False


class TestMatchFAQ:
    @pytest.mark.parametrize(
        "message,faq_id",
        [
            ("¿A qué hora es el check-in?", "check_in"),
            ("¿hasta qué hora es el checkout?", "check_out"),
            ("¿Tienen wifi?", "wifi"),
            ("¿tienen estacionamiento?", "parking"),
            ("¿el desayuno está incluido?", "breakfast"),
            ("¿Aceptan mascotas?", "pets"),
            ("¿Cuál es la dirección?", "location"),
            ("¿aceptan tarjeta?", "payment_methods"),
            ("Hola", "greeting"),
            ("muchas gracias", "thanks"),
        ],
    )
    def test_matches(self, message, faq_id, reference_date):
        entry = match_faq(message, reference_date)

        assert entry is not None
        assert entry.id == faq_id

    def test_specific_topic_wins_over_greeting(self, reference_date):
        assert match_faq("hola, ¿tienen wifi?", reference_date).id == "wifi"

    def test_no_match(self, reference_date):
        assert match_faq("¿qué tal el clima?", reference_date) is None

    def test_entry_ids_unique(self):
        ids = [entry.id for entry in FAQ_ENTRIES]

        assert len(ids) == len(set(ids))


class TestRender:
    def test_location_answer_uses_hotel_location(self, reference_date):
        entry = match_faq("¿Dónde queda el hotel?", reference_date)

        answer = entry.render("Cusco, Perú")

        assert entry.id == "location"
        assert "Estamos en Cusco, Perú" in answer
        assert "{location}" not in answer

    def test_every_answer_renders(self):
        for entry in FAQ_ENTRIES:
            assert "{" not in entry.render("Lima, Perú")
